"""Entry points called by the batch framework.

transaction() checks that the server is reachable before any task runs,
open() hands each task its own FtpFileOutput with a fresh session.
"""

import logging
import threading
from typing import Callable, List, Optional

from ftp_output.config.settings import OutputSettings
from ftp_output.ftp.connection import FTPSession, connect, create_ftp_client
from ftp_output.ftp.exceptions import FTPConfigError, RetryInterruptedError
from ftp_output.output.file_output import FtpFileOutput, TaskReport
from ftp_output.output.tempfiles import TempFileSpace

logger = logging.getLogger("ftp_output.plugin")


# Runs the tasks of a transaction; receives the settings to run with
Control = Callable[[OutputSettings], None]


class FtpFileOutputPlugin:
    """File output plugin writing to an FTP or FTPS server."""

    def __init__(self, client_factory=create_ftp_client):
        """
        Initialize the plugin.

        Args:
            client_factory: Creates unconnected ftplib clients
        """
        self._client_factory = client_factory

    def transaction(
        self,
        settings: OutputSettings,
        task_count: int,
        control: Control
    ) -> dict:
        """
        Verify the server is reachable, then run the tasks.

        Args:
            settings: Output settings
            task_count: Number of tasks the control will open
            control: Runs the tasks

        Returns:
            Config diff for the next run (always empty)

        Raises:
            FTPConfigError: If the server cannot be reached or logged into
        """
        session: Optional[FTPSession] = None
        try:
            session = connect(settings, client_factory=self._client_factory)
        except RetryInterruptedError:
            raise
        except Exception as e:
            raise FTPConfigError("Failed to connect to FTP server", e)
        finally:
            if session is not None:
                session.disconnect()

        return self.resume(settings, task_count, control)

    def resume(
        self,
        settings: OutputSettings,
        task_count: int,
        control: Control
    ) -> dict:
        """Run the tasks without the connectivity check."""
        logger.info(f"Running {task_count} output tasks to {settings.host}")
        control(settings)
        return {}

    def cleanup(
        self,
        settings: OutputSettings,
        task_count: int,
        task_reports: List[TaskReport]
    ) -> None:
        """Nothing to clean up; uploads are not staged remotely."""

    def open(
        self,
        settings: OutputSettings,
        task_index: int,
        cancel_event: Optional[threading.Event] = None
    ) -> FtpFileOutput:
        """
        Open the output stream of one task.

        Args:
            settings: Output settings
            task_index: Index of the task
            cancel_event: Optional event that interrupts connects and uploads

        Returns:
            FtpFileOutput with its own connected session
        """
        session = connect(settings, cancel_event, client_factory=self._client_factory)
        return FtpFileOutput(
            session,
            settings,
            task_index,
            temp_space=TempFileSpace(settings.temp_dir),
            cancel_event=cancel_event,
        )
