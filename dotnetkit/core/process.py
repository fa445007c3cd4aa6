"""
Child process execution for DotnetKit.

This module starts external commands and supervises them:
- Working directory and environment overrides (merged, never overwriting)
- Optional line-by-line capture of standard output
- Bounded waiting with forced termination of the whole process tree

A timeout is reported as data (ExecutionResult.timed_out), not as an
exception, so callers can decide how to react.

Usage:
    from dotnetkit.core.process import RunOptions, run_command

    lines = []
    result = run_command("dotnet", "--list-sdks", RunOptions(output_sink=lines, timeout_ms=30000))
    if result.timed_out:
        print("dotnet did not answer in time")
    else:
        print(f"exit code {result.exit_code}: {lines}")
"""

import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Mapping, Optional, Union

from dotnetkit.core.exceptions import ConfigurationError, LaunchError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


@dataclass(frozen=True)
class RunOptions:
    """
    Options for a single command run.

    Attributes:
        working_directory: Directory to start in (default: current directory)
        environment: Variables added to the inherited environment
        output_sink: List that receives stdout lines; None inherits stdout
        timeout_ms: Milliseconds to wait before killing the tree; 0 waits forever
    """

    working_directory: Optional[Union[str, Path]] = None
    environment: Optional[Mapping[str, str]] = None
    output_sink: Optional[List[str]] = None
    timeout_ms: int = 0


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a command run."""

    exit_code: int
    """Process exit code (only meaningful when timed_out is False)"""

    timed_out: bool = False
    """Whether the process tree was killed at the timeout deadline"""

    @property
    def succeeded(self) -> bool:
        return not self.timed_out and self.exit_code == 0


def build_command_line(
    command: str, arguments: str, windows: bool = IS_WINDOWS
) -> Union[str, List[str]]:
    """
    Turn a command and a pre-assembled argument string into Popen input.

    No shell is involved. On Windows the argument string is appended verbatim
    to the quoted command, forming the native command line. On POSIX it is
    split once with shell-style tokenization.

    Args:
        command: Executable name or path
        arguments: Argument string, already quoted by the caller
        windows: Build a Windows command line instead of an argv list

    Returns:
        Command line string (Windows) or argv list (POSIX)

    Example:
        >>> build_command_line("/bin/bash", "-c 'echo hi'", windows=False)
        ['/bin/bash', '-c', 'echo hi']
    """
    if windows:
        quoted = subprocess.list2cmdline([command])
        return f"{quoted} {arguments}" if arguments else quoted
    return [command] + shlex.split(arguments)


def run_command(
    command: str, arguments: str = "", options: Optional[RunOptions] = None
) -> ExecutionResult:
    """
    Run a command and wait for it.

    Args:
        command: Executable name or path
        arguments: Argument string, already quoted by the caller
        options: Run options (defaults: current directory, inherited stdout,
            no timeout)

    Returns:
        ExecutionResult with the exit code, or timed_out=True if the process
        tree had to be killed

    Raises:
        ConfigurationError: If options are invalid (before anything is spawned)
        LaunchError: If the process cannot be started
    """
    options = options or RunOptions()

    if options.timeout_ms < 0:
        raise ConfigurationError(
            f"timeout_ms must be >= 0 (0 means no timeout), got {options.timeout_ms}"
        )

    env = _merge_environment(options.environment)
    cwd = (
        Path(options.working_directory)
        if options.working_directory is not None
        else Path.cwd()
    )
    command_line = build_command_line(command, arguments)
    capture = options.output_sink is not None

    popen_kwargs = {
        "cwd": str(cwd),
        "env": env,
        "shell": False,
        "stdout": subprocess.PIPE if capture else None,
    }
    if capture:
        popen_kwargs.update(
            text=True, encoding="utf-8", errors="replace", bufsize=1
        )
    # The child leads its own group so the whole tree can be killed at once
    if IS_WINDOWS:
        popen_kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        popen_kwargs["start_new_session"] = True

    logger.debug(f"Running {command_line!r} in {cwd}")

    try:
        process = subprocess.Popen(command_line, **popen_kwargs)
    except OSError as e:
        raise LaunchError(command, str(e)) from e

    reader = None
    if capture:
        reader = threading.Thread(
            target=_drain_lines,
            args=(process.stdout, options.output_sink),
            name=f"dotnetkit-stdout-{process.pid}",
            daemon=True,
        )
        reader.start()

    timeout = options.timeout_ms / 1000 if options.timeout_ms else None
    deadline = time.monotonic() + timeout if timeout else None

    try:
        try:
            exit_code = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"'{command}' (pid {process.pid}) still running after "
                f"{options.timeout_ms} ms, terminating process tree"
            )
            terminate_tree(process)
            process.wait()
            result = ExecutionResult(exit_code=0, timed_out=True)
        else:
            result = ExecutionResult(exit_code=exit_code)
            if reader is not None and not _join_until(reader, deadline):
                # Descendants of the exited child still hold stdout open
                logger.warning(
                    f"'{command}' (pid {process.pid}) exited but its output was "
                    f"still open after {options.timeout_ms} ms, "
                    f"terminating process tree"
                )
                terminate_tree(process)
                result = ExecutionResult(exit_code=0, timed_out=True)
    except BaseException:
        # Interrupted while waiting: do not leave the tree running
        terminate_tree(process)
        process.wait()
        raise
    finally:
        if reader is not None:
            reader.join()
            process.stdout.close()

    logger.debug(f"'{command}' finished: {result}")
    return result


def terminate_tree(process: subprocess.Popen) -> None:
    """
    Forcibly terminate a process and all of its descendants.

    The process must have been started by run_command(), which makes it the
    leader of a new process group (POSIX) or console process group (Windows).

    Args:
        process: Process whose tree should be killed
    """
    if IS_WINDOWS:
        _terminate_tree_windows(process)
    else:
        _terminate_tree_posix(process)


def _terminate_tree_posix(process: subprocess.Popen) -> None:
    # pgid equals the leader's pid because of start_new_session
    try:
        os.killpg(process.pid, signal.SIGKILL)
        logger.debug(f"Killed process group {process.pid}")
    except ProcessLookupError:
        logger.debug(f"Process group {process.pid} already gone")
    except PermissionError as e:
        logger.warning(f"Cannot kill process group {process.pid}: {e}")
        if process.poll() is None:
            process.kill()


def _terminate_tree_windows(process: subprocess.Popen) -> None:
    result = subprocess.run(
        ["taskkill", "/F", "/T", "/PID", str(process.pid)],
        capture_output=True,
        text=True,
    )
    if result.returncode == 0:
        logger.debug(f"Killed process tree rooted at {process.pid}")
    elif process.poll() is None:
        logger.warning(
            f"taskkill failed for pid {process.pid}: {result.stderr.strip()}"
        )
        process.kill()


def _join_until(reader: threading.Thread, deadline: Optional[float]) -> bool:
    """Join the reader, giving up at deadline. Returns True if it finished."""
    if deadline is None:
        reader.join()
        return True
    reader.join(max(0.0, deadline - time.monotonic()))
    return not reader.is_alive()


def _drain_lines(stream: IO[str], sink: List[str]) -> None:
    """Append each line from stream to sink until EOF."""
    for line in stream:
        sink.append(line.rstrip("\r\n"))


def _merge_environment(overrides: Optional[Mapping[str, str]]) -> dict:
    """
    Copy the current environment and add overrides to it.

    Raises:
        ConfigurationError: If an override names an inherited variable
    """
    env = dict(os.environ)
    if not overrides:
        return env

    # Windows environment names are case-insensitive
    existing = {k.upper() for k in env} if IS_WINDOWS else set(env)
    for key, value in overrides.items():
        lookup = key.upper() if IS_WINDOWS else key
        if lookup in existing:
            raise ConfigurationError(
                f"Environment variable '{key}' is already set in the inherited "
                f"environment and cannot be overridden"
            )
        env[key] = str(value)
        existing.add(lookup)

    return env


__all__ = [
    "RunOptions",
    "ExecutionResult",
    "build_command_line",
    "run_command",
    "terminate_tree",
]
