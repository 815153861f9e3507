"""Configuration module for FTP File Output.

This module handles output settings and credentials:
- OutputSettings: Immutable settings with a defaults table
- CredentialManager: Secure password storage via keyring
- Paths: Local log and temp directories
"""
