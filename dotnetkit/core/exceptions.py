"""
Centralized exception hierarchy for DotnetKit.

This module defines all custom exceptions used across the codebase
so callers can catch one base class or a precise failure kind.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class DotnetKitError(Exception):
    """Base exception for all DotnetKit errors."""

    pass


# ============================================================================
# Process Exceptions
# ============================================================================


class ProcessError(DotnetKitError):
    """Base exception for command runner errors."""

    pass


class LaunchError(ProcessError):
    """Raised when a child process cannot be started at all."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to start '{command}': {reason}")


class ConfigurationError(ProcessError):
    """Raised when run options are invalid (checked before spawning)."""

    pass


# ============================================================================
# Download and Settings Exceptions
# ============================================================================


class DownloadError(DotnetKitError):
    """Raised when a remote file cannot be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class SettingsError(DotnetKitError):
    """Raised when a settings file cannot be read or has the wrong shape."""

    pass


# ============================================================================
# Installation Exceptions
# ============================================================================


class InstallationFailed(DotnetKitError):
    """
    Raised when the SDK installation does not complete successfully.

    Attributes:
        version: Requested SDK version (None means latest for the channel)
        exit_code: Installer exit code, if the installer ran to completion
    """

    def __init__(
        self,
        version: Optional[str],
        exit_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.version = version
        self.exit_code = exit_code
        self.reason = reason

        msg = f"Failed to install .NET SDK {version or 'latest'}"
        if exit_code is not None:
            msg += f": installer exited with code {exit_code}"
        elif reason:
            msg += f": {reason}"
        super().__init__(msg)


class FetchFailed(InstallationFailed):
    """Raised when the installer script cannot be downloaded."""

    def __init__(self, version: Optional[str], url: str, reason: str):
        self.url = url
        super().__init__(version, reason=f"could not fetch {url} ({reason})")
