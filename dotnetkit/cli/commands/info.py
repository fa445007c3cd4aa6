"""
Info command implementation.

Shows the resolved platform and which SDKs the install directory holds.
"""

import logging

from dotnetkit.cli.utils import load_cli_settings, print_error
from dotnetkit.core.exceptions import SettingsError
from dotnetkit.core.filesystem import is_executable
from dotnetkit.core.platform import resolve_platform
from dotnetkit.sdk.installer import dotnet_executable, list_installed_sdks

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the info command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        settings = load_cli_settings(args)
    except SettingsError as e:
        print_error("Failed to load configuration", str(e))
        return 1

    descriptor = resolve_platform()
    install_dir = settings.install_directory

    print(f"Platform:        {descriptor.os_family.value}")
    print(f"64-bit:          {'yes' if descriptor.is_64bit else 'no'}")
    print(f"Shell:           {descriptor.shell_command} {descriptor.shell_argument_prefix}")
    print(f"Installer:       dotnet-install.{descriptor.script_extension}")
    print(f"Install dir:     {install_dir}")
    print(f"Channel:         {settings.channel}")
    print(f"Version:         {settings.version or 'latest'}")

    dotnet = dotnet_executable(descriptor, install_dir)
    sdks = list_installed_sdks(descriptor, install_dir)
    if sdks:
        print("Installed SDKs:")
        for sdk in sdks:
            print(f"  {sdk}")
    elif is_executable(dotnet):
        print("Installed SDKs:  none reported")
    elif dotnet.exists():
        print("Installed SDKs:  none (dotnet is not executable)")
    else:
        print("Installed SDKs:  none (dotnet not found)")

    return 0
