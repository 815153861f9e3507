"""Utility module for FTP File Output.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Retry: Bounded retry with exponential backoff
- Validators: Input validation for hosts, ports, paths
"""
