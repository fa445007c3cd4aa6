"""
Shared utilities for CLI commands.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from dotnetkit.config.settings import InstallSettings, load_settings

logger = logging.getLogger(__name__)


def load_cli_settings(args) -> InstallSettings:
    """
    Load settings from the --config file and apply --channel/--install-dir.

    The config file is optional; defaults are used when it is missing.

    Args:
        args: Parsed arguments with config and optional overrides

    Returns:
        InstallSettings with command-line overrides applied
    """
    config_file = Path(args.config)
    settings = load_settings(config_file, required=False)
    return settings.with_overrides(
        channel=getattr(args, "channel", None),
        install_directory=getattr(args, "install_dir", None),
    )


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)
