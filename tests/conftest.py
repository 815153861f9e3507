"""Pytest configuration and shared fixtures for FTP File Output tests."""

import pytest
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock


@pytest.fixture
def mock_ftp() -> MagicMock:
    """Provide a mock ftplib client whose uploads consume the stream."""
    ftp = MagicMock()
    ftp.sendcmd.return_value = "211-Features:\n MDTM\n211 End"
    ftp.uploaded = {}

    def fake_storbinary(cmd, fp, blocksize=8192, callback=None, rest=None):
        data = b""
        while True:
            block = fp.read(blocksize)
            if not block:
                break
            data += block
            if callback:
                callback(block)
        ftp.uploaded[cmd[len("STOR "):]] = data
        return "226 Transfer complete"

    ftp.storbinary.side_effect = fake_storbinary
    return ftp


@pytest.fixture
def client_factory(mock_ftp) -> Callable:
    """Client factory returning the shared mock ftplib client."""
    return lambda settings: mock_ftp


@pytest.fixture
def local_file(tmp_path: Path) -> Path:
    """Create a small local output file."""
    path = tmp_path / "sample_000.00.csv.tmp"
    path.write_bytes(b"id,name\n1,alice\n2,bob\n")
    return path
