"""File uploader for FTP File Output.

Pushes one finished local output file to its remote path, creating the
remote directory when needed, and deletes the local file afterwards.
The whole sequence runs under run_with_retry().
"""

import logging
import threading
import time
from dataclasses import dataclass
from ftplib import error_perm
from pathlib import Path
from typing import Callable, Optional

from ftp_output.ftp.connection import FTPSession, is_retryable_connect_error
from ftp_output.ftp.exceptions import (
    FailureKind,
    FTPConfigError,
    FTPConnectionError,
    FTPDirectoryDeniedError,
    LocalFileCleanupError,
    RetryInterruptedError,
    classify_error,
    is_denied_reply,
)
from ftp_output.ftp.remote_path import DEFAULT_SEPARATOR, directory_chain
from ftp_output.utils.retry import RetryPolicy, run_with_retry

logger = logging.getLogger("ftp_output.uploader")


# Log a progress line every 100 MiB
TRANSFER_NOTICE_BYTES = 100 * 1024 * 1024


@dataclass(frozen=True)
class PendingUpload:
    """Local file waiting to be uploaded, with its remote location."""
    local_path: Path
    remote_path: str
    remote_directory: str


@dataclass
class UploadResult:
    """Result of a successful upload."""
    remote_path: str
    bytes_transferred: int
    duration_seconds: float
    attempts: int


class TransferListener:
    """Observer of a single file transfer. All methods are no-ops."""

    def on_start(self) -> None:
        pass

    def on_progress(self, length: int) -> None:
        pass

    def on_complete(self, total: int) -> None:
        pass

    def on_abort(self) -> None:
        pass

    def on_fail(self) -> None:
        pass


class LoggingTransferListener(TransferListener):
    """Logs transfer progress at a fixed byte cadence."""

    def __init__(
        self,
        local_path: str,
        remote_path: str,
        notice_bytes: int = TRANSFER_NOTICE_BYTES
    ):
        self.local_path = local_path
        self.remote_path = remote_path
        self.notice_bytes = notice_bytes
        self.total_transferred = 0
        self.next_notice = notice_bytes

    def on_start(self) -> None:
        logger.info(
            f'Transfer started. local path:"{self.local_path}" '
            f'remote path:"{self.remote_path}"'
        )

    def on_progress(self, length: int) -> None:
        self.total_transferred += length
        if self.total_transferred > self.next_notice:
            logger.info(f"Transferred {self.total_transferred} bytes")
            self.next_notice = (
                (self.total_transferred // self.notice_bytes) + 1
            ) * self.notice_bytes

    def on_complete(self, total: int) -> None:
        logger.info(
            f'Transfer completed. remote path:"{self.remote_path}", size:{total} bytes'
        )

    def on_abort(self) -> None:
        logger.info("Transfer aborted")

    def on_fail(self) -> None:
        logger.info("Transfer failed")


# Builds the listener for one transfer attempt from (local_path, remote_path)
ListenerFactory = Callable[[str, str], TransferListener]


class TransferAbortedError(Exception):
    """Raised from the transfer callback when the upload is cancelled."""


def is_retryable_upload_error(error: Exception) -> bool:
    """
    Configuration errors and refused reconnects are final; every other
    upload error is retried.
    """
    if isinstance(error, FTPConfigError):
        return False
    if isinstance(error, FTPConnectionError) and error.original_error is not None:
        return is_retryable_connect_error(error.original_error)
    return True


class FileUploader:
    """Uploads pending output files over an FTP session."""

    def __init__(
        self,
        session: FTPSession,
        retry_policy: RetryPolicy,
        cancel_event: Optional[threading.Event] = None,
        listener_factory: ListenerFactory = LoggingTransferListener,
        separator: str = DEFAULT_SEPARATOR
    ):
        """
        Initialize the uploader.

        Args:
            session: Ready FTP session, used by this uploader only
            retry_policy: Retry limits for the whole upload
            cancel_event: Optional event that aborts the upload
            listener_factory: Creates a TransferListener per attempt
            separator: Remote path separator
        """
        self._session = session
        self._retry_policy = retry_policy
        self._cancelled = cancel_event or threading.Event()
        self._listener_factory = listener_factory
        self._separator = separator

    @property
    def is_cancelled(self) -> bool:
        """True if current operation was cancelled."""
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Cancel current upload operation."""
        self._cancelled.set()

    def upload(self, pending: Optional[PendingUpload]) -> Optional[UploadResult]:
        """
        Upload a pending file and delete it locally.

        Args:
            pending: File to upload; None makes this a no-op

        Returns:
            UploadResult, or None when there was nothing to upload

        Raises:
            FTPConfigError: If the remote directory cannot be created or the
                local file cannot be deleted
            RetryGiveupError: If every attempt failed
            RetryInterruptedError: If cancelled
        """
        if pending is None:
            return None

        start_time = time.time()
        attempts = 0

        def attempt() -> int:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                self._session.keepalive(self._cancelled, retry_limit=0)
            self._ensure_directory(pending.remote_directory)
            total = self._transfer(pending)
            self._delete_local(pending.local_path)
            return total

        total = run_with_retry(
            attempt,
            self._retry_policy,
            is_retryable=is_retryable_upload_error,
            cancel_event=self._cancelled,
            description=f"FTP put request for {pending.remote_path}",
        )

        return UploadResult(
            remote_path=pending.remote_path,
            bytes_transferred=total,
            duration_seconds=time.time() - start_time,
            attempts=attempts,
        )

    def _ensure_directory(self, directory: str) -> None:
        """
        Change into the remote directory, creating it when missing.

        Missing parents are created one level at a time, since MKD only
        creates the last component of a path.

        Raises:
            FTPDirectoryDeniedError: If the server refuses to create it
        """
        try:
            self._session.change_directory(directory)
            return
        except error_perm as e:
            chain = directory_chain(directory, self._separator)
            if not chain:
                raise
            logger.info(f'Remote directory "{directory}" not usable ({e}), creating it')

        *parents, target = chain
        for parent in parents:
            try:
                self._session.make_directory(parent)
                logger.info(f'Created remote directory "{parent}"')
            except error_perm as e:
                # Usually "exists"; a real refusal resurfaces on the target
                logger.debug(f'MKD "{parent}" refused: {e}')

        try:
            self._session.make_directory(target)
        except error_perm as e:
            if is_denied_reply(e):
                raise FTPDirectoryDeniedError(target, e)
            raise
        logger.info(f'Created remote directory "{target}"')

    def _transfer(self, pending: PendingUpload) -> int:
        """Stream the local file to the server, returning bytes sent."""
        listener = self._listener_factory(str(pending.local_path), pending.remote_path)
        transferred = 0

        def on_transferred(length: int) -> None:
            nonlocal transferred
            if self._cancelled.is_set():
                raise TransferAbortedError(pending.remote_path)
            transferred += length
            listener.on_progress(length)

        # Reopened on every attempt so a retry starts from byte 0
        with open(pending.local_path, "rb") as f:
            listener.on_start()
            try:
                self._session.store_file(pending.remote_path, f, on_transferred)
            except TransferAbortedError:
                listener.on_abort()
                self._session.mark_broken()
                raise RetryInterruptedError(f"Upload of {pending.remote_path}")
            except Exception as e:
                listener.on_fail()
                if classify_error(e) is not FailureKind.DENIED:
                    self._session.mark_broken()
                raise

        listener.on_complete(transferred)
        return transferred

    def _delete_local(self, local_path: Path) -> None:
        """Delete the uploaded local file."""
        try:
            local_path.unlink()
        except OSError as e:
            raise LocalFileCleanupError(str(local_path), e)
        logger.info(f'Deleted local temporary file "{local_path}"')
