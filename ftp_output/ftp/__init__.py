"""FTP operations module for FTP File Output.

This module handles all FTP-related functionality:
- FTPSession: Connection management with TLS modes and state tracking
- FileUploader: Retried upload of one output file
- remote_path: Remote file naming
- DeflateReader: MODE Z compression of uploads
- Exceptions: FTP-specific error types
"""
