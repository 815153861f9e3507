"""Local path discovery for FTP File Output.

Defines where log files and local temporary output files live.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional


# Application name for local directories
APP_NAME = "ftp-file-output"


def get_app_data_dir() -> Path:
    """
    Get the application data directory.

    Returns:
        Path to app data directory (created if not exists)

    Platform-specific locations:
        - Windows: %APPDATA%/ftp-file-output
        - Linux: ~/.config/ftp-file-output
        - macOS: ~/Library/Application Support/ftp-file-output
    """
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    app_dir = base / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_log_dir() -> Path:
    """
    Get the directory for log files.

    Returns:
        Path to logs directory (created if not exists)
    """
    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_log_file_path() -> Path:
    """Get the path to the main log file."""
    return get_log_dir() / "ftp-output.log"


def get_temp_dir(base: Optional[str] = None) -> Path:
    """
    Get the directory for local temporary output files.

    Args:
        base: Configured directory; the system temp dir when None

    Returns:
        Path to temp directory (created if not exists)
    """
    root = Path(base) if base else Path(tempfile.gettempdir())
    temp_dir = root / APP_NAME
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir
