"""
DotnetKit CLI argument parser.

This module implements the command-line interface for DotnetKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("dotnetkit")
except Exception:
    __version__ = "0.1.0"

from dotnetkit.config.settings import DEFAULT_CONFIG_FILE

logger = logging.getLogger(__name__)


class CLI:
    """DotnetKit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="dotnetkit",
            description="DotnetKit - make sure the .NET SDK is present before building",
            epilog='Use "dotnetkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"DotnetKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            default=Path(DEFAULT_CONFIG_FILE),
            help=f"Path to configuration file (default: ./{DEFAULT_CONFIG_FILE})",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_install_command(subparsers)
        self._add_info_command(subparsers)
        self._add_exec_command(subparsers)

        return parser

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install the .NET SDK if it is missing",
            description="Download and run dotnet-install for the configured SDK",
        )
        parser.add_argument(
            "--sdk-version",
            dest="sdk_version",
            metavar="VERSION",
            help="Exact SDK version (default: configured version, else channel latest)",
        )
        parser.add_argument(
            "--channel",
            metavar="CHANNEL",
            help="Release channel (e.g., LTS, STS, 8.0)",
        )
        parser.add_argument(
            "--install-dir",
            type=Path,
            metavar="DIR",
            help="Install directory (default: from configuration)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Run the installer even if the SDK is already present",
        )

    def _add_info_command(self, subparsers):
        """Add 'info' subcommand."""
        parser = subparsers.add_parser(
            "info",
            help="Show platform and installed SDKs",
            description="Show the resolved platform and the SDKs in the install directory",
        )
        parser.add_argument(
            "--install-dir",
            type=Path,
            metavar="DIR",
            help="Install directory (default: from configuration)",
        )

    def _add_exec_command(self, subparsers):
        """Add 'exec' subcommand."""
        parser = subparsers.add_parser(
            "exec",
            help="Run a command under supervision",
            description=(
                "Run a command with an optional timeout. The process tree is "
                "killed when the timeout expires (exit code 124)."
            ),
        )
        parser.add_argument(
            "--timeout",
            type=int,
            default=0,
            metavar="MS",
            help="Timeout in milliseconds (default: 0, no timeout)",
        )
        parser.add_argument(
            "--cwd",
            type=Path,
            metavar="DIR",
            help="Working directory (default: current directory)",
        )
        parser.add_argument(
            "--env",
            action="append",
            type=lambda kv: kv.split("=", 1),
            metavar="KEY=VALUE",
            help="Environment variables to add (can be used multiple times)",
        )
        parser.add_argument(
            "--capture",
            action="store_true",
            help="Capture standard output and print it after the command ends",
        )
        parser.add_argument("exec_command", metavar="COMMAND", help="Command to run")
        parser.add_argument(
            "exec_args",
            nargs=argparse.REMAINDER,
            metavar="ARGS",
            help="Arguments passed to the command",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "install": "dotnetkit.cli.commands.install",
            "info": "dotnetkit.cli.commands.info",
            "exec": "dotnetkit.cli.commands.execute",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main(args: Optional[List[str]] = None):
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run(args))


if __name__ == "__main__":
    main()
