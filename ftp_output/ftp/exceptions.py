"""FTP-specific exceptions for FTP File Output.

Custom exception hierarchy for FTP operations. Errors raised by ftplib,
socket and ssl are collapsed into a single FailureKind tag so that retry
classification works on one vocabulary.
"""

import socket
import ssl
from enum import Enum
from ftplib import error_perm, error_proto, error_reply, error_temp


# Permanent reply codes meaning the server refused the operation
DENIED_REPLY_CODES = ("530", "532", "550", "553")


class FailureKind(Enum):
    """Category of a failed FTP or local operation."""
    NETWORK = "network"
    PROTOCOL_REPLY = "protocol_reply"
    TIMEOUT = "timeout"
    DENIED = "denied"
    LOCAL_IO = "local_io"


def reply_code(error: Exception) -> str:
    """Return the three-digit FTP reply code carried by an ftplib error."""
    return str(error)[:3]


def is_denied_reply(error: Exception) -> bool:
    """True if the error is a permanent reply refusing the operation."""
    return isinstance(error, error_perm) and reply_code(error) in DENIED_REPLY_CODES


def classify_error(error: Exception) -> FailureKind:
    """
    Map any exception raised during a transfer to a FailureKind.

    Args:
        error: Exception to classify

    Returns:
        FailureKind tag for the error
    """
    if isinstance(error, FTPError):
        return error.kind
    if is_denied_reply(error):
        return FailureKind.DENIED
    if isinstance(error, (error_perm, error_temp, error_reply, error_proto, EOFError)):
        return FailureKind.PROTOCOL_REPLY
    if isinstance(error, (socket.timeout, TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(error, (ConnectionError, socket.gaierror, ssl.SSLError)):
        return FailureKind.NETWORK
    if isinstance(error, OSError):
        return FailureKind.LOCAL_IO if error.filename else FailureKind.NETWORK
    return FailureKind.NETWORK


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    kind = FailureKind.NETWORK

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish FTP connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)

    @property
    def kind(self) -> FailureKind:
        if self.original_error is not None:
            return classify_error(self.original_error)
        return FailureKind.NETWORK


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    kind = FailureKind.DENIED

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}'"
        super().__init__(message, original_error)


class FTPNotConnectedError(FTPError):
    """Operation attempted without active FTP connection."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an active FTP connection"
        super().__init__(message)


class FTPConfigError(FTPError):
    """Configuration or environment problem that retrying cannot fix."""

    kind = FailureKind.DENIED


class FTPDirectoryDeniedError(FTPConfigError):
    """Server refused to create the remote directory."""

    def __init__(self, path: str, original_error: Exception = None):
        self.path = path
        message = f"Cannot create directory '{path}'"
        super().__init__(message, original_error)


class LocalFileCleanupError(FTPConfigError):
    """Local temporary file could not be deleted after upload."""

    kind = FailureKind.LOCAL_IO

    def __init__(self, path: str, original_error: Exception = None):
        self.path = path
        message = f"Couldn't delete local file {path}"
        super().__init__(message, original_error)


class RetryGiveupError(FTPError):
    """Retry budget exhausted without success."""

    def __init__(self, cause: Exception, attempts: int):
        self.cause = cause
        self.attempts = attempts
        message = f"Gave up after {attempts} attempts"
        super().__init__(message, cause)

    @property
    def kind(self) -> FailureKind:
        return classify_error(self.cause)


class RetryInterruptedError(FTPError):
    """Operation was cancelled while attempting or waiting to retry."""

    def __init__(self, operation: str = "Operation", original_error: Exception = None):
        self.operation = operation
        message = f"{operation} was interrupted"
        super().__init__(message, original_error)
