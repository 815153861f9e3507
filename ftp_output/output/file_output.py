"""Output stream lifecycle for FTP File Output.

FtpFileOutput buffers each logical output file in a local temp file and
uploads it when the stream moves on to the next file or finishes. One
instance owns one FTP session and is driven by a single thread.
"""

import logging
import threading
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import BinaryIO, List, Optional

from ftp_output.config.settings import OutputSettings
from ftp_output.ftp.connection import FTPSession
from ftp_output.ftp.remote_path import resolve_remote_path
from ftp_output.ftp.uploader import FileUploader, PendingUpload
from ftp_output.output.buffer import Buffer
from ftp_output.output.tempfiles import TempFileSpace
from ftp_output.utils.retry import RetryPolicy

logger = logging.getLogger("ftp_output.file_output")


class OutputState(Enum):
    """Lifecycle state of an output stream."""
    IDLE = "idle"
    WRITING = "writing"
    UPLOADING = "uploading"
    CLOSED = "closed"


@dataclass
class TaskReport:
    """Per-task receipt returned by commit()."""
    task_index: int
    uploaded_files: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert report to dictionary."""
        return asdict(self)


class FtpFileOutput:
    """Writes a sequence of files for one task and uploads each of them."""

    def __init__(
        self,
        session: FTPSession,
        settings: OutputSettings,
        task_index: int,
        temp_space: Optional[TempFileSpace] = None,
        uploader: Optional[FileUploader] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """
        Initialize the output stream.

        Args:
            session: Ready FTP session owned by this stream
            settings: Output settings
            task_index: Index of the task, first field of the sequence format
            temp_space: Allocator for local temp files
            uploader: Uploader to use, built from settings when None
            cancel_event: Optional event that interrupts uploads
        """
        self._session = session
        self._settings = settings
        self._task_index = task_index
        self._temp_space = temp_space or TempFileSpace(settings.temp_dir)
        self._uploader = uploader or FileUploader(
            session,
            RetryPolicy(retry_limit=settings.max_connection_retry),
            cancel_event=cancel_event,
            separator=settings.directory_separator,
        )
        self._output: Optional[BinaryIO] = None
        self._pending: Optional[PendingUpload] = None
        self._file_index = 0
        self._uploaded: List[str] = []
        self._state = OutputState.IDLE

    @property
    def state(self) -> OutputState:
        """Current lifecycle state."""
        return self._state

    @property
    def task_index(self) -> int:
        """Task index of this stream."""
        return self._task_index

    @property
    def file_index(self) -> int:
        """Index the next opened file will get."""
        return self._file_index

    @property
    def pending(self) -> Optional[PendingUpload]:
        """File currently being written, if any."""
        return self._pending

    @property
    def uploaded_files(self) -> List[str]:
        """Remote paths uploaded so far, in order."""
        return list(self._uploaded)

    def next_file(self) -> PendingUpload:
        """
        Start a new output file.

        The current file, if any, is closed and uploaded first.

        Returns:
            PendingUpload describing the new file

        Raises:
            RuntimeError: If the stream was already finished
            FTPError: If uploading the previous file failed
        """
        if self._state in (OutputState.UPLOADING, OutputState.CLOSED):
            raise RuntimeError(f"Cannot start a new file in state {self._state.value}")

        self._close_file()
        self._upload_pending()

        remote = resolve_remote_path(
            self._settings.path_prefix,
            self._settings.sequence_format,
            self._task_index,
            self._file_index,
            self._settings.file_ext,
            self._settings.directory_separator,
        )
        local_path = self._temp_space.create_temp_file(remote.file_path, "tmp")
        logger.info(f'Writing local temporary file "{local_path}"')

        self._pending = PendingUpload(
            local_path=local_path,
            remote_path=remote.file_path,
            remote_directory=remote.directory,
        )
        self._output = open(local_path, "wb")
        self._state = OutputState.WRITING
        return self._pending

    def add(self, buffer: Buffer) -> None:
        """
        Append a buffer to the current file.

        The buffer is released whether or not the write succeeds.

        Args:
            buffer: Data to write

        Raises:
            RuntimeError: If no file is open
            OSError: If writing fails
        """
        try:
            if self._output is None:
                raise RuntimeError("next_file() must be called before add()")
            self._output.write(buffer.view())
        finally:
            buffer.release()

    def finish(self) -> None:
        """Close and upload the current file, then disconnect."""
        try:
            self._close_file()
            self._state = OutputState.UPLOADING
            self._upload_pending()
        finally:
            self._session.disconnect()
            self._state = OutputState.CLOSED

    def close(self) -> None:
        """
        Close the current local file without uploading it. Idempotent.

        The session is disconnected unless finish() already did so.
        """
        self._close_file()
        if self._state != OutputState.CLOSED:
            self._session.disconnect()
            self._state = OutputState.CLOSED

    def abort(self) -> None:
        """Abandon the stream. Files already uploaded stay on the server."""
        logger.info(f"Output for task {self._task_index} aborted")

    def commit(self) -> TaskReport:
        """Return the receipt for this task."""
        return TaskReport(task_index=self._task_index, uploaded_files=self.uploaded_files)

    def _close_file(self) -> None:
        if self._output is None:
            return
        output, self._output = self._output, None
        output.close()
        self._file_index += 1

    def _upload_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None:
            return

        try:
            self._uploader.upload(pending)
        except Exception as e:
            logger.error(
                f'Upload to "{pending.remote_path}" failed, '
                f'local file kept at "{pending.local_path}": {e}'
            )
            raise
        self._uploaded.append(pending.remote_path)
