"""
Exec command implementation.

Runs an arbitrary command through the supervising command runner.
"""

import logging
import shlex
import subprocess
from typing import List, Optional

from dotnetkit.cli.utils import print_error
from dotnetkit.core.exceptions import ConfigurationError, LaunchError
from dotnetkit.core.process import IS_WINDOWS, RunOptions, run_command

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


def run(args) -> int:
    """
    Run the exec command.

    Args:
        args: Parsed command-line arguments

    Returns:
        The command's exit code, 124 on timeout, or 1 if it could not run
    """
    sink: Optional[List[str]] = [] if args.capture else None
    options = RunOptions(
        working_directory=args.cwd,
        environment=dict(args.env) if args.env else None,
        output_sink=sink,
        timeout_ms=args.timeout,
    )
    arguments = join_arguments(args.exec_args)

    try:
        result = run_command(args.exec_command, arguments, options)
    except ConfigurationError as e:
        print_error("Invalid options", str(e))
        return 1
    except LaunchError as e:
        print_error(f"Could not start {args.exec_command}", e.reason)
        return 1

    if sink is not None:
        for line in sink:
            print(line)

    if result.timed_out:
        logger.error(
            f"{args.exec_command} did not finish within {args.timeout} ms and was killed"
        )
        return TIMEOUT_EXIT_CODE

    return result.exit_code


def join_arguments(arguments: List[str]) -> str:
    """Quote an argv list into the single argument string run_command() expects."""
    if IS_WINDOWS:
        return subprocess.list2cmdline(arguments)
    return shlex.join(arguments)
