"""
Core functionality for DotnetKit.

This package contains the foundational modules the installer depends on:
platform resolution, process supervision, downloads and filesystem helpers.
"""

from .platform import (
    OSFamily,
    PlatformDescriptor,
    descriptor_for,
    resolve_platform,
    clear_platform_cache,
)

from .process import (
    RunOptions,
    ExecutionResult,
    build_command_line,
    run_command,
    terminate_tree,
)

from .download import fetch_file

from .filesystem import ensure_directory, make_executable

from .exceptions import (
    DotnetKitError,
    ProcessError,
    LaunchError,
    ConfigurationError,
    DownloadError,
    SettingsError,
    InstallationFailed,
    FetchFailed,
)

__all__ = [
    "OSFamily",
    "PlatformDescriptor",
    "descriptor_for",
    "resolve_platform",
    "clear_platform_cache",
    "RunOptions",
    "ExecutionResult",
    "build_command_line",
    "run_command",
    "terminate_tree",
    "fetch_file",
    "ensure_directory",
    "make_executable",
    "DotnetKitError",
    "ProcessError",
    "LaunchError",
    "ConfigurationError",
    "DownloadError",
    "SettingsError",
    "InstallationFailed",
    "FetchFailed",
]
