"""MODE Z support for FTP File Output.

ftplib has no built-in deflate transfer mode, so uploads wrap the local
file in DeflateReader when the server accepted MODE Z.
"""

import zlib
from typing import BinaryIO, Callable, Optional


# Raw bytes read from the source per refill
READ_SIZE = 64 * 1024


class DeflateReader:
    """Read-only file object returning the deflated bytes of another stream."""

    def __init__(
        self,
        source: BinaryIO,
        on_read: Optional[Callable[[int], None]] = None,
        level: int = zlib.Z_DEFAULT_COMPRESSION
    ):
        """
        Initialize the reader.

        Args:
            source: Binary stream to compress
            on_read: Optional callback receiving the raw byte count of each read
            level: zlib compression level
        """
        self._source = source
        self._on_read = on_read
        self._compressor = zlib.compressobj(level)
        self._pending = b""
        self._eof = False
        self.raw_bytes = 0

    def read(self, size: int = -1) -> bytes:
        """Return up to size compressed bytes, b"" once exhausted."""
        while not self._eof and (size < 0 or len(self._pending) < size):
            chunk = self._source.read(READ_SIZE)
            if not chunk:
                self._pending += self._compressor.flush()
                self._eof = True
                break
            self.raw_bytes += len(chunk)
            if self._on_read:
                self._on_read(len(chunk))
            self._pending += self._compressor.compress(chunk)

        if size < 0:
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data
