"""Local temporary file allocation for FTP File Output.

Each output file is buffered in a local temp file before it is uploaded.
Any object with a create_temp_file(name_hint, suffix) method can replace
TempFileSpace.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from ftp_output.config.paths import get_temp_dir

logger = logging.getLogger("ftp_output.tempfiles")


# Characters allowed in the hint part of temp file names
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class TempFileSpace:
    """Allocates uniquely named temp files in one directory."""

    def __init__(self, directory: Optional[Path] = None):
        """
        Initialize the temp file space.

        Args:
            directory: Base directory for temp files, the system temp dir when None
        """
        self._directory = get_temp_dir(directory)

    @property
    def directory(self) -> Path:
        """Directory holding the temp files."""
        return self._directory

    def create_temp_file(self, name_hint: str, suffix: str = "tmp") -> Path:
        """
        Create an empty temp file.

        Args:
            name_hint: Readable part of the name, e.g. the remote path
            suffix: File extension without dot

        Returns:
            Path to the new, empty file
        """
        hint = _UNSAFE_CHARS.sub("_", name_hint).strip("_")[:100] or "output"
        fd, path = tempfile.mkstemp(
            prefix=f"{hint}.", suffix=f".{suffix}", dir=self._directory
        )
        os.close(fd)
        return Path(path)
