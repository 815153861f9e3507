"""Caller-owned byte buffers handed to FtpFileOutput.add()."""

from typing import Optional, Union


class Buffer:
    """A slice of bytes that must be released once consumed."""

    def __init__(self, data: Union[bytes, bytearray], offset: int = 0, limit: Optional[int] = None):
        """
        Initialize the buffer.

        Args:
            data: Backing bytes
            offset: Start of the valid region
            limit: Length of the valid region, defaults to the rest of data
        """
        if limit is None:
            limit = len(data) - offset
        if offset < 0 or limit < 0 or offset + limit > len(data):
            raise ValueError(f"Invalid buffer region offset={offset} limit={limit}")
        self._data = data
        self._offset = offset
        self._limit = limit
        self._release_count = 0

    @classmethod
    def wrap(cls, data: Union[bytes, bytearray]) -> "Buffer":
        """Wrap the whole of data."""
        return cls(data)

    @property
    def released(self) -> bool:
        """True once release() was called."""
        return self._release_count > 0

    @property
    def release_count(self) -> int:
        """Number of release() calls."""
        return self._release_count

    def __len__(self) -> int:
        return self._limit

    def view(self) -> memoryview:
        """Valid region as a memoryview.

        Raises:
            RuntimeError: If the buffer was already released
        """
        if self.released:
            raise RuntimeError("Buffer already released")
        return memoryview(self._data)[self._offset:self._offset + self._limit]

    def release(self) -> None:
        """Give the buffer back to its owner."""
        self._release_count += 1
