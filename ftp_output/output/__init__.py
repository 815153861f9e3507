"""Output stream module for FTP File Output.

- FtpFileOutputPlugin: transaction/open entry points
- FtpFileOutput: Per-task stream of local files uploaded in order
- Buffer, TempFileSpace: Data handed in and local buffering
"""
