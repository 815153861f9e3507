"""Command line entry point for FTP File Output.

Uploads local files as consecutive output files of one task:

    ftp-output --config settings.json data1.csv data2.csv

Each input file becomes one remote file named from path_prefix,
sequence_format and file_ext.
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ftp_output.config.credentials import CredentialManager
from ftp_output.config.paths import get_log_file_path
from ftp_output.config.settings import OutputSettings, load_settings
from ftp_output.ftp.exceptions import (
    FTPConfigError,
    FTPError,
    RetryGiveupError,
    RetryInterruptedError,
)
from ftp_output.output.buffer import Buffer
from ftp_output.output.file_output import TaskReport
from ftp_output.output.plugin import FtpFileOutputPlugin
from ftp_output.utils.logging import setup_logging
from ftp_output.utils.validators import validate_file_path


# Bytes read from an input file per add() call
CHUNK_SIZE = 1024 * 1024

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_TRANSFER_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ftp-output",
        description="Upload files to an FTP/FTPS server as sequentially named output files.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="local files to upload")
    parser.add_argument("-c", "--config", type=Path, required=True, help="settings JSON file")
    parser.add_argument("--task-index", type=int, default=0, help="task index used in file names")
    parser.add_argument("--log-file", type=Path, default=None, help="also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log FTP commands")
    parser.add_argument(
        "--save-password",
        action="store_true",
        help="prompt for the FTP password and store it in the system keyring",
    )
    return parser


def upload_files(
    plugin: FtpFileOutputPlugin,
    settings: OutputSettings,
    files: List[Path],
    task_index: int = 0
) -> TaskReport:
    """
    Upload files as one task through the plugin.

    Args:
        plugin: Output plugin
        settings: Output settings
        files: Local files, one remote file each
        task_index: Task index used in remote file names

    Returns:
        TaskReport of the task
    """
    reports: List[TaskReport] = []

    def control(task_settings: OutputSettings) -> None:
        output = plugin.open(task_settings, task_index)
        try:
            for path in files:
                output.next_file()
                with open(path, "rb") as f:
                    while True:
                        chunk = f.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        output.add(Buffer.wrap(chunk))
            output.finish()
            reports.append(output.commit())
        except BaseException:
            output.abort()
            raise
        finally:
            output.close()

    plugin.transaction(settings, 1, control)
    plugin.cleanup(settings, 1, reports)
    return reports[0]


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line interface."""
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logger = setup_logging(level=level, log_file=args.log_file or get_log_file_path())

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid settings: {e}")
        return EXIT_CONFIG_ERROR

    credentials = CredentialManager()

    if args.save_password:
        if settings.user is None:
            logger.error("Settings have no user to store a password for")
            return EXIT_CONFIG_ERROR
        password = getpass.getpass(f"Password for {settings.user}@{settings.host}: ")
        if not credentials.save_password(settings.host, settings.user, password):
            return EXIT_CONFIG_ERROR
        logger.info("Password saved")
        return EXIT_OK

    if not args.files:
        logger.error("No files to upload")
        return EXIT_CONFIG_ERROR

    for path in args.files:
        is_valid, error = validate_file_path(path)
        if not is_valid:
            logger.error(error)
            return EXIT_CONFIG_ERROR

    settings = credentials.fill_password(settings)

    try:
        report = upload_files(FtpFileOutputPlugin(), settings, args.files, args.task_index)
    except FTPConfigError as e:
        logger.error(f"Configuration problem: {e}")
        return EXIT_CONFIG_ERROR
    except RetryGiveupError as e:
        logger.error(f"Giving up after {e.attempts} attempts: {e.cause}")
        return EXIT_TRANSFER_ERROR
    except (RetryInterruptedError, KeyboardInterrupt):
        logger.error("Interrupted")
        return EXIT_INTERRUPTED
    except (FTPError, OSError) as e:
        logger.error(f"Upload failed: {e}")
        return EXIT_TRANSFER_ERROR

    for remote_path in report.uploaded_files:
        logger.info(f"Uploaded {remote_path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
