"""
.NET SDK installation.

This module drives the official dotnet-install script:
1. Ensure the install directory exists
2. Download dotnet-install.ps1 / dotnet-install.sh into it (always refreshed)
3. Mark the script executable on non-Windows hosts
4. Run it through the platform shell with channel, version and directory
5. Turn a non-zero exit into InstallationFailed

It can also ask an existing installation which SDKs it has, so a build can
skip the download when the requested SDK is already there.

Example:
    >>> from dotnetkit.core.platform import resolve_platform
    >>> plan = InstallPlan("https://dot.net/v1", "LTS", Path(".dotnet"), "8.0.100")
    >>> ensure_sdk(resolve_platform(), plan)
"""

import logging
import shlex
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Union

from dotnetkit.core.download import fetch_file
from dotnetkit.core.exceptions import (
    DownloadError,
    FetchFailed,
    InstallationFailed,
    LaunchError,
)
from dotnetkit.core.filesystem import ensure_directory, make_executable
from dotnetkit.core.platform import PlatformDescriptor
from dotnetkit.core.process import ExecutionResult, RunOptions, run_command

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_NAME = "dotnet-install"
LIST_SDKS_TIMEOUT_MS = 30000

Fetcher = Callable[[str, Path], Path]
Runner = Callable[[str, str, RunOptions], ExecutionResult]


@dataclass(frozen=True)
class InstallPlan:
    """What to install and where, for a single installation."""

    install_script_url: str
    """Base URL the installer script is downloaded from"""

    channel: str
    """Release channel passed to the installer (e.g. 'LTS', '8.0')"""

    install_directory: Union[str, Path]
    """Where the SDK and the installer script go"""

    version: Optional[str] = None
    """Exact SDK version, or None for the channel's latest"""


def build_install_arguments(plan: InstallPlan) -> List[str]:
    """
    Build the installer argument list.

    Order is fixed: channel, optional version, install directory.

    Example:
        >>> build_install_arguments(InstallPlan("https://dot.net/v1", "LTS", "/x"))
        ['-Channel', 'LTS', '-InstallDir', '/x']
    """
    arguments = ["-Channel", plan.channel]
    if plan.version:
        arguments.extend(["-Version", plan.version])
    arguments.extend(["-InstallDir", str(plan.install_directory)])
    return arguments


def build_shell_arguments(
    descriptor: PlatformDescriptor, script_path: Path, arguments: List[str]
) -> str:
    """
    Build the argument string that makes the platform shell run the script.

    The script invocation is passed to the shell as a single argument after
    the shell's inline-command prefix.

    Args:
        descriptor: Platform whose shell runs the script
        script_path: Installer script location
        arguments: Flag/value pairs from build_install_arguments()

    Returns:
        Argument string for run_command()
    """
    if descriptor.is_windows:
        invocation = _powershell_invocation(script_path, arguments)
        return f'{descriptor.shell_argument_prefix} "{invocation}"'

    invocation = shlex.join([str(script_path)] + arguments)
    return f"{descriptor.shell_argument_prefix} {shlex.quote(invocation)}"


def _powershell_invocation(script_path: Path, arguments: List[str]) -> str:
    # Flags stay bare so PowerShell binds them as parameters; values are literals
    parts = [f"& {_powershell_quote(str(script_path))}"]
    for flag, value in zip(arguments[::2], arguments[1::2]):
        parts.append(f"{flag} {_powershell_quote(value)}")
    return " ".join(parts)


def _powershell_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def install_sdk(
    descriptor: PlatformDescriptor,
    plan: InstallPlan,
    fetch: Fetcher = fetch_file,
    runner: Runner = run_command,
) -> Path:
    """
    Download and run the installer script.

    The script is re-downloaded on every call. The installer runs without a
    timeout and its output streams straight to the console.

    Args:
        descriptor: Host platform
        plan: What to install and where
        fetch: Downloader (url, destination) used for the script
        runner: Command runner used to invoke the shell

    Returns:
        Resolved install directory

    Raises:
        FetchFailed: If the script cannot be downloaded (nothing is run)
        InstallationFailed: If the installer exits with a non-zero code
        LaunchError: If the shell cannot be started
    """
    version_label = plan.version or "latest"
    logger.info(
        f"Installing .NET SDK {version_label} (channel {plan.channel}) "
        f"into {plan.install_directory}"
    )

    install_dir = ensure_directory(plan.install_directory)
    logger.debug(f"Install directory ready: {install_dir}")

    script_name = f"{INSTALL_SCRIPT_NAME}.{descriptor.script_extension}"
    script_path = install_dir / script_name
    script_url = f"{plan.install_script_url.rstrip('/')}/{script_name}"

    try:
        fetch(script_url, script_path)
    except DownloadError as e:
        raise FetchFailed(plan.version, script_url, e.reason) from e
    logger.debug(f"Installer script fetched: {script_path}")

    if not descriptor.is_windows:
        make_executable(script_path)
        logger.debug(f"Installer script marked executable: {script_path}")

    arguments = build_install_arguments(replace(plan, install_directory=install_dir))
    shell_arguments = build_shell_arguments(descriptor, script_path, arguments)

    result = runner(descriptor.shell_command, shell_arguments, RunOptions(timeout_ms=0))
    logger.debug(f"Installer finished: {result}")

    if result.timed_out:
        raise InstallationFailed(plan.version, reason="installer timed out")
    if result.exit_code != 0:
        raise InstallationFailed(plan.version, result.exit_code)

    logger.info(f"Installed .NET SDK {version_label} into {install_dir}")
    return install_dir


def dotnet_executable(
    descriptor: PlatformDescriptor, install_directory: Union[str, Path]
) -> Path:
    """Path of the dotnet host inside an install directory."""
    name = "dotnet.exe" if descriptor.is_windows else "dotnet"
    return Path(install_directory) / name


def list_installed_sdks(
    descriptor: PlatformDescriptor,
    install_directory: Union[str, Path],
    timeout_ms: int = LIST_SDKS_TIMEOUT_MS,
    runner: Runner = run_command,
) -> List[str]:
    """
    List SDK versions present in an install directory.

    Runs ``dotnet --list-sdks``, whose lines look like
    ``8.0.100 [/home/user/.dotnet/sdk]``.

    Args:
        descriptor: Host platform
        install_directory: Directory holding the dotnet host
        timeout_ms: How long to wait for dotnet to answer
        runner: Command runner

    Returns:
        Installed SDK versions in the order dotnet reports them; empty if
        there is no dotnet host or it could not be queried
    """
    executable = dotnet_executable(descriptor, install_directory)
    if not executable.exists():
        logger.debug(f"No dotnet host at {executable}")
        return []

    lines: List[str] = []
    options = RunOptions(output_sink=lines, timeout_ms=timeout_ms)
    try:
        result = runner(str(executable), "--list-sdks", options)
    except LaunchError as e:
        logger.warning(f"Could not query installed SDKs: {e}")
        return []

    if result.timed_out:
        logger.warning(f"'{executable} --list-sdks' timed out after {timeout_ms} ms")
        return []
    if result.exit_code != 0:
        logger.warning(
            f"'{executable} --list-sdks' exited with code {result.exit_code}"
        )
        return []

    return [line.split()[0] for line in lines if line.strip()]


def ensure_sdk(
    descriptor: PlatformDescriptor,
    plan: InstallPlan,
    force: bool = False,
    fetch: Fetcher = fetch_file,
    runner: Runner = run_command,
) -> Path:
    """
    Make sure the planned SDK is installed, installing it only when needed.

    With a specific version the SDK counts as present when dotnet lists that
    version. Without one, any installed SDK counts.

    Args:
        descriptor: Host platform
        plan: What to install and where
        force: Run the installer even if the SDK is already present
        fetch: Downloader used for the installer script
        runner: Command runner

    Returns:
        Resolved install directory

    Raises:
        InstallationFailed: If an installation was needed and failed
    """
    if not force:
        installed = list_installed_sdks(
            descriptor, plan.install_directory, runner=runner
        )
        if plan.version and plan.version in installed:
            logger.info(f".NET SDK {plan.version} already installed")
            return Path(plan.install_directory).resolve()
        if not plan.version and installed:
            logger.info(f".NET SDK already installed ({', '.join(installed)})")
            return Path(plan.install_directory).resolve()

    return install_sdk(descriptor, plan, fetch=fetch, runner=runner)
