"""Integration tests for the FTP output workflow.

Tests connecting, writing multi-file output streams and uploading them
to a local pyftpdlib server.
"""

import time
import pytest

from ftp_output.config.settings import OutputSettings
from ftp_output.ftp.connection import ConnectionState, connect
from ftp_output.ftp.exceptions import (
    FTPAuthenticationError,
    FTPConfigError,
    FTPConnectionError,
    FTPDirectoryDeniedError,
)
from ftp_output.main import upload_files
from ftp_output.output.buffer import Buffer
from ftp_output.output.plugin import FtpFileOutputPlugin

from .mock_ftp_server import MockFTPServer, unused_port


@pytest.fixture
def ftp_server():
    """Provide a running mock FTP server."""
    server = MockFTPServer()
    server.start()
    yield server
    server.stop()


def make_settings(server: MockFTPServer, tmp_path, **overrides) -> OutputSettings:
    values = {
        "host": server.host,
        "port": server.port,
        "user": server.username,
        "password": server.password,
        "path_prefix": "/out/sample_",
        "file_ext": "csv",
        "max_connection_retry": 1,
        "temp_dir": str(tmp_path / "spool"),
    }
    values.update(overrides)
    return OutputSettings.from_dict(values)


class TestFTPConnectionWorkflow:
    """Integration tests for FTP connection workflow."""

    def test_connect_and_disconnect(self, ftp_server, tmp_path):
        """Test basic connect and disconnect cycle."""
        session = connect(make_settings(ftp_server, tmp_path))

        assert session.state == ConnectionState.READY
        assert session.compression_enabled is False

        session.disconnect()

        assert session.state == ConnectionState.DISCONNECTED

    def test_connect_wrong_password(self, ftp_server, tmp_path):
        """Test connection with wrong password fails."""
        settings = make_settings(ftp_server, tmp_path, password="wrongpassword")

        with pytest.raises(FTPAuthenticationError):
            connect(settings)

    def test_connection_refused_fails_fast(self, tmp_path):
        """Test a closed port fails on the first attempt."""
        settings = OutputSettings.from_dict({
            "host": "127.0.0.1",
            "port": unused_port(),
            "path_prefix": "/out/sample_",
            "file_ext": "csv",
            "max_connection_retry": 10,
        })

        start = time.monotonic()
        with pytest.raises(FTPConnectionError) as exc_info:
            connect(settings)

        assert isinstance(exc_info.value.original_error, ConnectionRefusedError)
        # Ten retries would wait several seconds of backoff
        assert time.monotonic() - start < 1.0


class TestOutputWorkflow:
    """Integration tests for writing and uploading output files."""

    def test_multi_file_stream(self, ftp_server, tmp_path):
        """Test each rotated file lands on the server in order."""
        settings = make_settings(ftp_server, tmp_path)
        plugin = FtpFileOutputPlugin()
        reports = []

        def control(task_settings):
            output = plugin.open(task_settings, 0)
            try:
                output.next_file()
                output.add(Buffer.wrap(b"id,name\n1,alice\n"))
                output.next_file()
                output.add(Buffer.wrap(b"id,name\n2,bob\n"))
                output.finish()
                reports.append(output.commit())
            finally:
                output.close()

        plugin.transaction(settings, 1, control)

        assert reports[0].uploaded_files == [
            "/out/sample_000.00.csv",
            "/out/sample_000.01.csv",
        ]
        assert ftp_server.remote_file("/out/sample_000.00.csv").read_bytes() == (
            b"id,name\n1,alice\n"
        )
        assert ftp_server.remote_file("/out/sample_000.01.csv").read_bytes() == (
            b"id,name\n2,bob\n"
        )
        assert list((tmp_path / "spool" / "ftp-file-output").iterdir()) == []

    def test_creates_missing_directory(self, ftp_server, tmp_path):
        """Test the remote directory is created on first upload."""
        settings = make_settings(
            ftp_server, tmp_path, path_prefix="/out/daily/part_", file_ext=".txt"
        )
        data = tmp_path / "data.txt"
        data.write_bytes(b"hello\n")

        report = upload_files(FtpFileOutputPlugin(), settings, [data], task_index=3)

        assert report.uploaded_files == ["/out/daily/part_003.00.txt"]
        assert ftp_server.remote_file("/out/daily/part_003.00.txt").read_bytes() == b"hello\n"

    def test_creates_nested_directories(self, ftp_server, tmp_path):
        """Test every missing level of the remote directory is created."""
        settings = make_settings(ftp_server, tmp_path, path_prefix="/out/a/b/x_")
        data = tmp_path / "data.csv"
        data.write_bytes(b"nested\n")

        report = upload_files(FtpFileOutputPlugin(), settings, [data])

        assert report.uploaded_files == ["/out/a/b/x_000.00.csv"]
        assert ftp_server.remote_file("/out/a/b/x_000.00.csv").read_bytes() == b"nested\n"

    def test_large_file(self, ftp_server, tmp_path):
        """Test a multi-chunk file arrives intact."""
        settings = make_settings(ftp_server, tmp_path)
        data = tmp_path / "big.csv"
        content = b"0123456789abcdef" * (200 * 1024)
        data.write_bytes(content)

        upload_files(FtpFileOutputPlugin(), settings, [data])

        assert ftp_server.remote_file("/out/sample_000.00.csv").read_bytes() == content

    def test_directory_denied(self, ftp_server, tmp_path):
        """Test a refused MKD fails without retries and keeps the local file."""
        settings = make_settings(
            ftp_server,
            tmp_path,
            user=MockFTPServer.NO_MKDIR_USER,
            password=MockFTPServer.NO_MKDIR_PASS,
            path_prefix="/restricted/sample_",
        )
        plugin = FtpFileOutputPlugin()
        output = plugin.open(settings, 0)
        pending = output.next_file()
        output.add(Buffer.wrap(b"x\n"))

        with pytest.raises(FTPDirectoryDeniedError):
            output.finish()

        assert pending.local_path.exists()
        assert not ftp_server.remote_file("/restricted").exists()

    def test_transaction_unreachable(self, tmp_path):
        """Test the transaction check reports an unreachable server."""
        settings = OutputSettings.from_dict({
            "host": "127.0.0.1",
            "port": unused_port(),
            "path_prefix": "/out/sample_",
            "file_ext": "csv",
        })

        with pytest.raises(FTPConfigError):
            FtpFileOutputPlugin().transaction(settings, 1, lambda s: None)
