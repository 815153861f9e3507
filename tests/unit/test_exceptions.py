"""Unit tests for the FTP error taxonomy."""

import socket
import ssl
import pytest
from ftplib import error_perm, error_proto, error_reply, error_temp

from ftp_output.ftp.exceptions import (
    FailureKind,
    FTPAuthenticationError,
    FTPConnectionError,
    FTPDirectoryDeniedError,
    FTPNotConnectedError,
    LocalFileCleanupError,
    RetryGiveupError,
    RetryInterruptedError,
    classify_error,
    is_denied_reply,
)


class TestClassifyError:
    """Tests for classify_error."""

    @pytest.mark.parametrize("error,kind", [
        (error_perm("550 Permission denied"), FailureKind.DENIED),
        (error_perm("530 Not logged in"), FailureKind.DENIED),
        (error_perm("553 File name not allowed"), FailureKind.DENIED),
        (error_perm("501 Syntax error"), FailureKind.PROTOCOL_REPLY),
        (error_temp("421 Service not available"), FailureKind.PROTOCOL_REPLY),
        (error_reply("110 Restart marker"), FailureKind.PROTOCOL_REPLY),
        (error_proto("garbage"), FailureKind.PROTOCOL_REPLY),
        (EOFError(), FailureKind.PROTOCOL_REPLY),
        (socket.timeout("timed out"), FailureKind.TIMEOUT),
        (ConnectionResetError("reset"), FailureKind.NETWORK),
        (socket.gaierror("name resolution"), FailureKind.NETWORK),
        (ssl.SSLError("handshake"), FailureKind.NETWORK),
        (OSError(2, "No such file", "/tmp/x.tmp"), FailureKind.LOCAL_IO),
        (OSError("unreachable"), FailureKind.NETWORK),
        (ValueError("other"), FailureKind.NETWORK),
    ])
    def test_builtin_errors(self, error, kind):
        assert classify_error(error) is kind

    def test_wrapped_errors_use_cause(self):
        assert classify_error(
            FTPConnectionError("h", 21, socket.timeout("t"))
        ) is FailureKind.TIMEOUT
        assert classify_error(FTPConnectionError("h", 21)) is FailureKind.NETWORK
        assert classify_error(
            RetryGiveupError(error_perm("550 denied"), 3)
        ) is FailureKind.DENIED

    def test_own_errors(self):
        assert classify_error(FTPAuthenticationError("bob")) is FailureKind.DENIED
        assert classify_error(FTPDirectoryDeniedError("/out")) is FailureKind.DENIED
        assert classify_error(LocalFileCleanupError("/tmp/x")) is FailureKind.LOCAL_IO

    def test_is_denied_reply(self):
        assert is_denied_reply(error_perm("550 No")) is True
        assert is_denied_reply(error_perm("500 Unknown command")) is False
        assert is_denied_reply(error_temp("550 looks denied")) is False


class TestMessages:
    """Tests for exception messages."""

    def test_connection_error(self):
        error = FTPConnectionError("ftp.example.com", 990, ConnectionRefusedError("refused"))
        assert str(error) == "Failed to connect to ftp.example.com:990: refused"
        assert error.host == "ftp.example.com"
        assert error.port == 990

    def test_not_connected(self):
        assert str(FTPNotConnectedError("STOR")) == "STOR requires an active FTP connection"

    def test_directory_denied(self):
        error = FTPDirectoryDeniedError("/out", error_perm("550 No such file or directory"))
        assert str(error) == "Cannot create directory '/out': 550 No such file or directory"

    def test_giveup(self):
        cause = OSError("reset")
        error = RetryGiveupError(cause, 11)
        assert error.cause is cause
        assert error.attempts == 11
        assert str(error) == "Gave up after 11 attempts: reset"

    def test_interrupted(self):
        assert str(RetryInterruptedError("Upload")) == "Upload was interrupted"
