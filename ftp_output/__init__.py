"""FTP File Output.

Delivers locally buffered output files to an FTP or FTPS server,
retrying transient network and server failures.
"""

__version__ = "0.1.0"
