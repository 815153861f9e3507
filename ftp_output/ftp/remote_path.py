"""Remote path resolution for FTP File Output.

Builds the remote file name of each output file from the configured
prefix and sequence format. Pure functions, no I/O.
"""

from dataclasses import dataclass
from typing import List, Optional


DEFAULT_SEQUENCE_FORMAT = "%03d.%02d"
DEFAULT_SEPARATOR = "/"


@dataclass(frozen=True)
class RemotePath:
    """Remote location of one output file."""
    directory: str
    file_path: str


def normalize_suffix(suffix: Optional[str]) -> str:
    """
    Make sure a file extension starts with exactly one dot.

    Args:
        suffix: Extension such as "csv" or ".csv"

    Returns:
        ".csv" for both inputs, "." for an empty suffix and "" when
        there is no suffix at all
    """
    if suffix is None:
        return ""
    if suffix.startswith("."):
        return suffix
    return "." + suffix


def get_remote_directory(file_path: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """
    Get the parent directory of a remote path.

    Args:
        file_path: Remote file path
        separator: Path separator used by the server

    Returns:
        Everything before the last separator, or the separator itself
        when the file sits at the root
    """
    parent, sep, _ = file_path.rpartition(separator)
    if not sep or not parent:
        return separator
    return parent


def directory_chain(directory: str, separator: str = DEFAULT_SEPARATOR) -> List[str]:
    """
    List a directory and its ancestors, outermost first.

    "/out/a/b" gives ["/out", "/out/a", "/out/a/b"]. The root itself is
    never listed.
    """
    root = separator if directory.startswith(separator) else ""
    parts = [part for part in directory.split(separator) if part]
    return [root + separator.join(parts[:i + 1]) for i in range(len(parts))]


def resolve_remote_path(
    path_prefix: str,
    sequence_format: str,
    task_index: int,
    file_index: int,
    suffix: Optional[str],
    separator: str = DEFAULT_SEPARATOR,
) -> RemotePath:
    """
    Resolve the remote directory and file path for an output file.

    Args:
        path_prefix: Configured path prefix, e.g. "/out/sample_"
        sequence_format: printf-style format taking (task_index, file_index)
        task_index: Index of the task writing the file
        file_index: Index of the file within the task
        suffix: File extension, with or without leading dot
        separator: Remote path separator

    Returns:
        RemotePath with directory and file_path

    Raises:
        ValueError: If sequence_format does not accept two integers
    """
    try:
        sequence = sequence_format % (task_index, file_index)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid sequence format '{sequence_format}': {e}") from e

    file_path = path_prefix + sequence + normalize_suffix(suffix)
    if not file_path.startswith(separator):
        file_path = separator + file_path

    return RemotePath(
        directory=get_remote_directory(file_path, separator),
        file_path=file_path,
    )
