"""
File system helpers used while installing the SDK.

Only the primitives the installer needs live here. Failures are not masked:
OSError from the underlying call propagates to the caller.
"""

import os
import stat
from pathlib import Path
from typing import Union

IS_WINDOWS = os.name == "nt"

_EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        Path object (resolved)

    Example:
        >>> ensure_directory('/tmp/dotnet')
        PosixPath('/tmp/dotnet')
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path.resolve()


def make_executable(path: Union[str, Path]) -> None:
    """
    Add execute permission for user, group and others.

    Existing permission bits are kept.

    Args:
        path: File to mark executable
    """
    path = Path(path)
    mode = path.stat().st_mode
    path.chmod(mode | _EXECUTE_BITS)


def is_executable(path: Union[str, Path]) -> bool:
    """Check whether a file exists and can be executed by the current user."""
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)
