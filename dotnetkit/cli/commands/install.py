"""
Install command implementation.

Makes sure the requested .NET SDK is present, running dotnet-install if not.
"""

import logging

from dotnetkit.cli.utils import load_cli_settings, print_error
from dotnetkit.core.exceptions import InstallationFailed, LaunchError, SettingsError
from dotnetkit.core.platform import resolve_platform
from dotnetkit.sdk.installer import ensure_sdk

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    logger.debug(f"Arguments: {args}")

    try:
        settings = load_cli_settings(args)
    except SettingsError as e:
        print_error("Failed to load configuration", str(e))
        return 1

    plan = settings.to_plan(args.sdk_version)
    descriptor = resolve_platform()
    logger.debug(f"Platform: {descriptor}")

    try:
        install_dir = ensure_sdk(descriptor, plan, force=args.force)
    except InstallationFailed as e:
        print_error(
            f"Could not install .NET SDK {e.version or 'latest'}",
            str(e),
        )
        return 1
    except LaunchError as e:
        print_error(
            f"Could not start the installer for .NET SDK {plan.version or 'latest'}",
            str(e),
        )
        return 1

    print(f".NET SDK ready in {install_dir}")
    return 0
