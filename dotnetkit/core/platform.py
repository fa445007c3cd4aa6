"""
Platform detection for DotnetKit.

This module inspects the host once and produces an immutable descriptor
holding everything needed to run the .NET installer script: the OS family,
bitness, and the shell used to invoke the script.

Shell policy:
- Windows: powershell.exe, running the script through -Command
- macOS/Linux: bash, running the script through -c

Usage:
    from dotnetkit.core.platform import resolve_platform

    descriptor = resolve_platform()
    print(f"Shell: {descriptor.shell_command} {descriptor.shell_argument_prefix}")
    print(f"Installer: dotnet-install.{descriptor.script_extension}")
"""

import enum
import functools
import logging
import platform
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class OSFamily(enum.Enum):
    """Operating system families the installer supports."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


WINDOWS_SHELL = "powershell.exe"
WINDOWS_SHELL_PREFIX = "-NoProfile -NonInteractive -ExecutionPolicy Bypass -Command"
POSIX_SHELL = "/bin/bash"
POSIX_SHELL_PREFIX = "-c"


@dataclass(frozen=True)
class PlatformDescriptor:
    """
    Immutable description of the host platform.

    Attributes:
        os_family: Operating system family
        is_64bit: Whether the host is 64-bit
        shell_command: Shell executable used to run the installer script
        shell_argument_prefix: Flags that make the shell execute an inline command
        script_extension: Installer script suffix ('ps1' or 'sh')
    """

    os_family: OSFamily
    is_64bit: bool
    shell_command: str
    shell_argument_prefix: str
    script_extension: str

    @property
    def is_windows(self) -> bool:
        return self.os_family is OSFamily.WINDOWS

    def __str__(self) -> str:
        bits = "64-bit" if self.is_64bit else "32-bit"
        return (
            f"{self.os_family.value} ({bits}) "
            f"shell={self.shell_command} script=.{self.script_extension}"
        )


def descriptor_for(os_family: OSFamily, is_64bit: bool) -> PlatformDescriptor:
    """
    Build the descriptor for an OS family.

    This is the pure policy mapping; resolve_platform() feeds it host facts.

    Args:
        os_family: Operating system family
        is_64bit: Whether the host is 64-bit

    Returns:
        PlatformDescriptor with the shell settings for that family

    Example:
        >>> descriptor_for(OSFamily.LINUX, True).shell_command
        '/bin/bash'
    """
    if os_family is OSFamily.WINDOWS:
        return PlatformDescriptor(
            os_family=os_family,
            is_64bit=is_64bit,
            shell_command=WINDOWS_SHELL,
            shell_argument_prefix=WINDOWS_SHELL_PREFIX,
            script_extension="ps1",
        )

    return PlatformDescriptor(
        os_family=os_family,
        is_64bit=is_64bit,
        shell_command=POSIX_SHELL,
        shell_argument_prefix=POSIX_SHELL_PREFIX,
        script_extension="sh",
    )


@functools.lru_cache(maxsize=1)
def resolve_platform() -> PlatformDescriptor:
    """
    Detect the current platform.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformDescriptor for the host
    """
    descriptor = descriptor_for(_detect_os_family(), _detect_is_64bit())
    logger.debug(f"Resolved platform: {descriptor}")
    return descriptor


def _detect_os_family() -> OSFamily:
    """
    Detect operating system family.

    Unknown systems fall back to the POSIX branch so a shell is always defined.
    """
    system = platform.system().lower()

    if system == "windows":
        return OSFamily.WINDOWS
    elif system == "darwin":
        return OSFamily.MACOS
    elif system == "linux":
        return OSFamily.LINUX
    elif system.startswith(("cygwin", "msys")):
        # POSIX Python on Windows: bash and shlex argument handling apply
        return OSFamily.LINUX
    else:
        logger.warning(
            f"Unrecognized operating system '{system}', assuming a POSIX shell"
        )
        return OSFamily.LINUX


def _detect_is_64bit() -> bool:
    """Detect whether the host is 64-bit."""
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64", "x64", "aarch64", "arm64", "ppc64le", "s390x"):
        return True
    if machine in ("i386", "i686", "x86", "armv7l", "arm"):
        return False
    # Fall back to the interpreter's pointer size
    return sys.maxsize > 2**32


def clear_platform_cache():
    """
    Clear the platform detection cache.

    This forces the next call to resolve_platform() to re-detect.
    Useful for testing.
    """
    resolve_platform.cache_clear()


__all__ = [
    "OSFamily",
    "PlatformDescriptor",
    "descriptor_for",
    "resolve_platform",
    "clear_platform_cache",
]
