"""FTP connection management for FTP File Output.

Provides ConnectionState enum, the ftplib client factory for plain FTP,
explicit FTPS (AUTH TLS) and implicit FTPS, and FTPSession, which owns
one control connection for the lifetime of an output stream.
"""

import errno
import logging
import ssl
import threading
from datetime import datetime
from enum import Enum
from ftplib import FTP, FTP_TLS, all_errors, error_perm, error_temp
from typing import BinaryIO, Callable, Optional

from ftp_output.config.settings import OutputSettings
from ftp_output.ftp.compression import DeflateReader
from ftp_output.ftp.exceptions import (
    FTPAuthenticationError,
    FTPConnectionError,
    FTPNotConnectedError,
    RetryGiveupError,
    RetryInterruptedError,
)
from ftp_output.utils.retry import RetryPolicy, run_with_retry

logger = logging.getLogger("ftp_output.connection")


# Per-attempt timeouts in seconds, independent of retry waits
CONNECT_TIMEOUT = 30
READ_TIMEOUT = 60
CLOSE_TIMEOUT = 60

# Idle time after which a NOOP checks the control connection
KEEPALIVE_INTERVAL = 3.0

# Block size for FTP transfers (64KB)
BLOCK_SIZE = 64 * 1024


class ConnectionState(Enum):
    """FTP session state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    ERROR = "error"


class CommandLoggingMixin:
    """Logs control connection traffic at debug level, hiding passwords."""

    def putcmd(self, line: str) -> None:
        if line.startswith("PASS "):
            logger.debug("> PASS [REDACTED]")
        else:
            logger.debug(f"> {line}")
        super().putcmd(line)

    def getmultiline(self) -> str:
        line = super().getmultiline()
        logger.debug(f"< {line}")
        return line


class LoggingFTP(CommandLoggingMixin, FTP):
    """Plain FTP client."""


class SecureFTP(CommandLoggingMixin, FTP_TLS):
    """Explicit FTPS client reusing the control TLS session for data."""

    def ntransfercmd(self, cmd, rest=None):
        conn, size = FTP.ntransfercmd(self, cmd, rest)
        if self._prot_p:
            session = self.sock.session if isinstance(self.sock, ssl.SSLSocket) else None
            conn = self.context.wrap_socket(
                conn, server_hostname=self.host, session=session
            )
        return conn, size


class ImplicitSecureFTP(SecureFTP):
    """Implicit FTPS client: TLS starts as soon as the socket connects."""

    _sock = None

    @property
    def sock(self):
        return self._sock

    @sock.setter
    def sock(self, value):
        if value is not None and not isinstance(value, ssl.SSLSocket):
            value = self.context.wrap_socket(value, server_hostname=self.host)
        self._sock = value


def build_ssl_context(settings: OutputSettings) -> ssl.SSLContext:
    """
    Build the TLS context from the configured trust material.

    Args:
        settings: Output settings with ssl_* options

    Returns:
        SSLContext for the control and data connections
    """
    if not settings.ssl_verify:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    context = ssl.create_default_context(
        cafile=settings.ssl_trusted_ca_cert_file,
        cadata=settings.ssl_trusted_ca_cert_data,
    )
    context.check_hostname = settings.ssl_verify_hostname
    return context


def create_ftp_client(
    settings: OutputSettings,
    ssl_context_factory: Callable[[OutputSettings], ssl.SSLContext] = build_ssl_context
) -> FTP:
    """
    Create an unconnected ftplib client for the configured security mode.

    Args:
        settings: Output settings
        ssl_context_factory: Builds the TLS context when ssl is enabled

    Returns:
        LoggingFTP, SecureFTP (explicit) or ImplicitSecureFTP (implicit)
    """
    if not settings.ssl:
        return LoggingFTP(timeout=CONNECT_TIMEOUT)

    context = ssl_context_factory(settings)
    if settings.ssl_explicit:
        logger.info("Using FTPES(FTPS/explicit) mode")
        return SecureFTP(context=context, timeout=CONNECT_TIMEOUT)

    logger.info("Using FTPS(FTPS/implicit) mode")
    return ImplicitSecureFTP(context=context, timeout=CONNECT_TIMEOUT)


def is_retryable_connect_error(error: Exception) -> bool:
    """A refused connection is final; every other connect error is retried."""
    if isinstance(error, ConnectionRefusedError):
        return False
    return getattr(error, "errno", None) != errno.ECONNREFUSED


class FTPSession:
    """One control connection to the FTP server."""

    def __init__(
        self,
        settings: OutputSettings,
        client_factory: Callable[[OutputSettings], FTP] = create_ftp_client
    ):
        """
        Initialize the session.

        Args:
            settings: Output settings
            client_factory: Creates the unconnected ftplib client
        """
        self._settings = settings
        self._client_factory = client_factory
        self._ftp: Optional[FTP] = None
        self._state = ConnectionState.DISCONNECTED
        self._connected_at: Optional[datetime] = None
        self._last_activity: Optional[datetime] = None
        self._compression_enabled = False

    @property
    def state(self) -> ConnectionState:
        """Current session state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        """True if logged in and ready for transfers."""
        return self._state == ConnectionState.READY

    @property
    def settings(self) -> OutputSettings:
        """Settings this session was opened with."""
        return self._settings

    @property
    def connected_at(self) -> Optional[datetime]:
        """Timestamp when connection was established."""
        return self._connected_at

    @property
    def last_activity(self) -> Optional[datetime]:
        """Timestamp of last successful operation."""
        return self._last_activity

    @property
    def compression_enabled(self) -> bool:
        """True if MODE Z was accepted by the server."""
        return self._compression_enabled

    @property
    def ftp(self) -> FTP:
        """
        Get the underlying FTP object.

        Raises:
            FTPNotConnectedError: If the session is not ready
        """
        if not self.is_ready or self._ftp is None:
            raise FTPNotConnectedError("FTP access")
        return self._ftp

    def open(
        self,
        cancel_event: Optional[threading.Event] = None,
        retry_limit: Optional[int] = None
    ) -> None:
        """
        Connect, log in and negotiate transfer modes.

        Args:
            cancel_event: Optional event that interrupts connect retries
            retry_limit: Connect retries, defaults to max_connection_retry

        Raises:
            FTPConnectionError: If the connection or negotiation fails
            FTPAuthenticationError: If login is rejected
            RetryInterruptedError: If cancelled while connecting
        """
        settings = self._settings
        host = settings.host
        port = settings.effective_port

        self._state = ConnectionState.CONNECTING
        self._compression_enabled = False
        ftp = self._client_factory(settings)
        self._ftp = ftp

        try:
            self._connect(ftp, host, port, cancel_event, retry_limit)
            self._state = ConnectionState.CONNECTED

            if settings.ssl and settings.ssl_explicit:
                logger.info("Negotiating TLS with AUTH TLS")
                ftp.auth()

            if settings.user is not None:
                logger.info(f"Logging in with user {settings.user}")
                try:
                    ftp.login(user=settings.user, passwd=settings.password or "")
                except error_perm as e:
                    raise FTPAuthenticationError(settings.user, e)
                self._state = ConnectionState.AUTHENTICATED

            if settings.ssl:
                logger.info("Protecting data connections (PROT P)")
                ftp.prot_p()

            if settings.passive_mode:
                logger.info("Using passive mode")
            else:
                logger.info("Using active mode")
            ftp.set_pasv(settings.passive_mode)

            if settings.ascii_mode:
                logger.info("Using ASCII mode")
                ftp.voidcmd("TYPE A")
            else:
                logger.info("Using binary mode")
                ftp.voidcmd("TYPE I")

            if settings.compression and not settings.ascii_mode:
                if self._compression_supported(ftp):
                    logger.info("Using MODE Z compression")
                    ftp.voidcmd("MODE Z")
                    self._compression_enabled = True

            ftp.timeout = READ_TIMEOUT
            if ftp.sock is not None:
                ftp.sock.settimeout(READ_TIMEOUT)

            self._state = ConnectionState.READY
            self._connected_at = datetime.now()
            self._last_activity = self._connected_at

        except (FTPConnectionError, FTPAuthenticationError, RetryInterruptedError):
            self._fail()
            raise
        except error_perm as e:
            logger.info(f"FTP command failed: {e}")
            self._fail()
            raise FTPConnectionError(host, port, e)
        except all_errors as e:
            logger.info(f"FTP network error: {e!r}")
            self._fail()
            raise FTPConnectionError(host, port, e)

    def _connect(
        self,
        ftp: FTP,
        host: str,
        port: int,
        cancel_event: Optional[threading.Event],
        retry_limit: Optional[int] = None
    ) -> None:
        """Open the control socket, retrying per max_connection_retry."""
        if retry_limit is None:
            retry_limit = self._settings.max_connection_retry
        policy = RetryPolicy(retry_limit=retry_limit)

        def attempt() -> str:
            logger.info(f"Connecting to {host}:{port}")
            try:
                return ftp.connect(host=host, port=port, timeout=CONNECT_TIMEOUT)
            except Exception:
                ftp.close()
                raise

        try:
            welcome = run_with_retry(
                attempt,
                policy,
                is_retryable=is_retryable_connect_error,
                cancel_event=cancel_event,
                description=f"FTP connect to {host}:{port}",
            )
        except RetryGiveupError as e:
            raise FTPConnectionError(host, port, e.cause)
        except RetryInterruptedError:
            raise
        except Exception as e:
            logger.info(f"Connection to {host}:{port} refused")
            raise FTPConnectionError(host, port, e)

        logger.debug(f"Server welcome: {welcome}")

    def _compression_supported(self, ftp: FTP) -> bool:
        """True if the FEAT reply lists MODE Z."""
        try:
            features = ftp.sendcmd("FEAT")
        except (error_perm, error_temp):
            return False
        return any(
            line.strip().upper().startswith("MODE Z")
            for line in features.splitlines()[1:]
        )

    def _fail(self) -> None:
        """Tear down a half-open session after a setup failure."""
        self._close_quietly()
        self._state = ConnectionState.ERROR

    def _close_quietly(self) -> None:
        if self._ftp:
            try:
                if self._ftp.sock is not None:
                    self._ftp.sock.settimeout(CLOSE_TIMEOUT)
                self._ftp.quit()
            except Exception:
                # Best effort close
                try:
                    self._ftp.close()
                except Exception:
                    pass
        self._ftp = None
        self._compression_enabled = False

    def disconnect(self) -> None:
        """Close FTP connection gracefully, ignoring errors."""
        if self._ftp is not None:
            logger.info(f"Disconnecting from {self._settings.host}")
        self._close_quietly()
        self._state = ConnectionState.DISCONNECTED
        self._connected_at = None

    def _update_activity(self) -> None:
        """Update last activity timestamp."""
        self._last_activity = datetime.now()

    def keepalive(
        self,
        cancel_event: Optional[threading.Event] = None,
        retry_limit: Optional[int] = None
    ) -> None:
        """
        Make sure the control connection still answers.

        Sends NOOP when idle longer than KEEPALIVE_INTERVAL and reopens the
        session if the server no longer responds.

        Args:
            cancel_event: Optional event that interrupts reconnect retries
            retry_limit: Reconnect retries, defaults to max_connection_retry
        """
        if not self.is_ready:
            logger.info("Session is not ready, reconnecting")
            self.disconnect()
            self.open(cancel_event, retry_limit)
            return

        if self._last_activity is not None:
            idle = (datetime.now() - self._last_activity).total_seconds()
            if idle < KEEPALIVE_INTERVAL:
                return

        try:
            self.ftp.voidcmd("NOOP")
            self._update_activity()
        except all_errors as e:
            logger.warning(f"Control connection lost ({e!r}), reconnecting")
            self.disconnect()
            self.open(cancel_event, retry_limit)

    def mark_broken(self) -> None:
        """Force the next keepalive() to reconnect."""
        self._state = ConnectionState.ERROR

    def change_directory(self, path: str) -> None:
        """
        Change current working directory.

        Args:
            path: Remote directory path

        Raises:
            FTPNotConnectedError: If not connected
        """
        self.ftp.cwd(path)
        self._update_activity()

    def make_directory(self, path: str) -> str:
        """
        Create a remote directory.

        Args:
            path: Remote directory path

        Returns:
            Path reported by the server

        Raises:
            FTPNotConnectedError: If not connected
        """
        created = self.ftp.mkd(path)
        self._update_activity()
        return created

    def store_file(
        self,
        remote_path: str,
        fp: BinaryIO,
        on_transferred: Optional[Callable[[int], None]] = None
    ) -> None:
        """
        Upload a binary stream to remote_path with STOR.

        Uses storlines in ASCII mode and deflates the stream when MODE Z
        is active.

        Args:
            remote_path: Remote file path
            fp: Open binary stream positioned at the start
            on_transferred: Optional callback receiving local byte counts

        Raises:
            FTPNotConnectedError: If not connected
        """
        ftp = self.ftp
        command = f"STOR {remote_path}"

        def counter(block: bytes) -> None:
            if on_transferred:
                on_transferred(len(block))

        if self._settings.ascii_mode:
            ftp.storlines(command, fp, callback=counter)
        elif self._compression_enabled:
            reader = DeflateReader(fp, on_read=on_transferred)
            ftp.storbinary(command, reader, blocksize=BLOCK_SIZE)
        else:
            ftp.storbinary(command, fp, blocksize=BLOCK_SIZE, callback=counter)

        self._update_activity()


def connect(
    settings: OutputSettings,
    cancel_event: Optional[threading.Event] = None,
    client_factory: Callable[[OutputSettings], FTP] = create_ftp_client
) -> FTPSession:
    """
    Open a ready-to-use FTP session.

    Args:
        settings: Output settings
        cancel_event: Optional event that interrupts connect retries
        client_factory: Creates the unconnected ftplib client

    Returns:
        FTPSession in READY state

    Raises:
        FTPConnectionError: If the connection or negotiation fails
        FTPAuthenticationError: If login is rejected
        RetryInterruptedError: If cancelled while connecting
    """
    session = FTPSession(settings, client_factory=client_factory)
    session.open(cancel_event)
    return session
