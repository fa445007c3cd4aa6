"""
Tests for the command runner.

These tests start real child processes using the current Python interpreter.
Process-tree termination tests are POSIX-only.
"""

import os
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest
from unittest.mock import patch

from dotnetkit.cli.commands.execute import join_arguments
from dotnetkit.core.exceptions import ConfigurationError, LaunchError
from dotnetkit.core.process import (
    ExecutionResult,
    RunOptions,
    build_command_line,
    run_command,
    terminate_tree,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")

PYTHON = sys.executable


def python_args(code: str) -> str:
    """Argument string running code with the current interpreter."""
    return join_arguments(["-c", textwrap.dedent(code)])


def pid_alive(pid: int) -> bool:
    """Check whether a pid belongs to a live (non-zombie) process."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True

    stat_file = Path(f"/proc/{pid}/stat")
    if stat_file.exists():
        try:
            state = stat_file.read_text().rsplit(")", 1)[1].split()[0]
        except (OSError, IndexError):
            return False
        return state != "Z"
    return True


def wait_until_dead(pid: int, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not pid_alive(pid):
            return True
        time.sleep(0.05)
    return not pid_alive(pid)


def reader_threads():
    return [t for t in threading.enumerate() if t.name.startswith("dotnetkit-stdout")]


class TestExecutionResult:
    """Tests for ExecutionResult."""

    def test_succeeded(self):
        assert ExecutionResult(exit_code=0).succeeded
        assert not ExecutionResult(exit_code=2).succeeded
        assert not ExecutionResult(exit_code=0, timed_out=True).succeeded


class TestBuildCommandLine:
    """Tests for command line assembly."""

    def test_posix_splits_once(self):
        """Test POSIX argument strings are tokenized without a shell."""
        result = build_command_line(
            "/bin/bash", "-c '/x/dotnet-install.sh -Channel LTS'", windows=False
        )
        assert result == ["/bin/bash", "-c", "/x/dotnet-install.sh -Channel LTS"]

    def test_posix_no_arguments(self):
        assert build_command_line("dotnet", "", windows=False) == ["dotnet"]

    def test_posix_does_not_expand(self):
        """Test shell syntax is passed through literally."""
        result = build_command_line("echo", "$HOME '*' ;", windows=False)
        assert result == ["echo", "$HOME", "*", ";"]

    def test_windows_appends_verbatim(self):
        """Test Windows arguments are appended to the quoted command as-is."""
        result = build_command_line(
            "C:\\Program Files\\pwsh.exe", '-Command "& \'a b.ps1\'"', windows=True
        )
        assert result == '"C:\\Program Files\\pwsh.exe" -Command "& \'a b.ps1\'"'

    def test_windows_no_arguments(self):
        assert build_command_line("dotnet.exe", "", windows=True) == "dotnet.exe"


class TestRunOptionsValidation:
    """Tests for option validation before spawning."""

    def test_negative_timeout_rejected(self):
        """Test negative timeout raises before anything is started."""
        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(ConfigurationError, match="timeout_ms"):
                run_command(PYTHON, "", RunOptions(timeout_ms=-1))
            mock_popen.assert_not_called()

    def test_environment_collision_rejected(self, monkeypatch):
        """Test an override for an inherited variable raises before spawning."""
        monkeypatch.setenv("DOTNETKIT_TEST_INHERITED", "original")

        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(ConfigurationError, match="DOTNETKIT_TEST_INHERITED"):
                run_command(
                    PYTHON,
                    "",
                    RunOptions(environment={"DOTNETKIT_TEST_INHERITED": "new"}),
                )
            mock_popen.assert_not_called()

        assert os.environ["DOTNETKIT_TEST_INHERITED"] == "original"


class TestRunCommand:
    """Tests for run_command()."""

    @pytest.mark.parametrize("timeout_ms", [0, 10000, 60000])
    @pytest.mark.parametrize("code", [0, 1, 7])
    def test_exit_code_reported(self, code, timeout_ms):
        """Test a quickly exiting process reports its exit code for any timeout."""
        result = run_command(
            PYTHON,
            python_args(f"import sys; sys.exit({code})"),
            RunOptions(timeout_ms=timeout_ms),
        )

        assert result == ExecutionResult(exit_code=code, timed_out=False)

    def test_default_options(self):
        """Test run_command works without options."""
        result = run_command(PYTHON, python_args("pass"))
        assert result.exit_code == 0
        assert not result.timed_out

    def test_output_sink_preserves_order(self):
        """Test captured lines arrive in emission order without newlines."""
        sink = []
        code = """
            import sys, time
            for line in ("a", "b", "c"):
                print(line)
                sys.stdout.flush()
                time.sleep(0.05)
        """

        result = run_command(PYTHON, python_args(code), RunOptions(output_sink=sink))

        assert result.exit_code == 0
        assert sink == ["a", "b", "c"]
        assert reader_threads() == []

    def test_output_sink_appends(self):
        """Test existing sink entries are kept."""
        sink = ["before"]
        run_command(PYTHON, python_args("print('after')"), RunOptions(output_sink=sink))
        assert sink == ["before", "after"]

    def test_inherits_stdout_without_sink(self, capfd):
        """Test stdout goes to the parent's stdout when no sink is given."""
        run_command(PYTHON, python_args("print('inherited-output')"))

        captured = capfd.readouterr()
        assert "inherited-output" in captured.out

    def test_environment_added(self):
        """Test environment overrides reach the child alongside inherited ones."""
        sink = []
        code = """
            import os
            print(os.environ["DOTNETKIT_TEST_ADDED"])
            print("PATH" in os.environ)
        """

        run_command(
            PYTHON,
            python_args(code),
            RunOptions(environment={"DOTNETKIT_TEST_ADDED": "hello"}, output_sink=sink),
        )

        assert sink == ["hello", "True"]
        assert "DOTNETKIT_TEST_ADDED" not in os.environ

    def test_working_directory(self, temp_dir):
        """Test the child starts in the requested directory."""
        sink = []
        run_command(
            PYTHON,
            python_args("import os; print(os.getcwd())"),
            RunOptions(working_directory=temp_dir, output_sink=sink),
        )

        assert Path(sink[0]).resolve() == temp_dir.resolve()

    def test_working_directory_defaults_to_cwd(self, temp_dir, monkeypatch):
        """Test the current directory is used when none is given."""
        monkeypatch.chdir(temp_dir)
        sink = []
        run_command(
            PYTHON,
            python_args("import os; print(os.getcwd())"),
            RunOptions(output_sink=sink),
        )

        assert Path(sink[0]).resolve() == temp_dir.resolve()

    def test_missing_executable_raises_launch_error(self, temp_dir):
        """Test a missing executable raises LaunchError instead of returning."""
        missing = str(temp_dir / "no-such-program")

        with pytest.raises(LaunchError) as exc_info:
            run_command(missing, "--help")

        assert exc_info.value.command == missing
        assert isinstance(exc_info.value.__cause__, OSError)

    @posix_only
    def test_permission_denied_raises_launch_error(self, temp_dir):
        """Test a non-executable file raises LaunchError."""
        script = temp_dir / "not-executable.sh"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)

        with pytest.raises(LaunchError):
            run_command(str(script), "")


class TestTimeout:
    """Tests for timeout handling."""

    def test_timeout_returns_timed_out(self):
        """Test a hanging process is killed shortly after the deadline."""
        start = time.monotonic()

        result = run_command(
            PYTHON,
            python_args("import time; time.sleep(60)"),
            RunOptions(timeout_ms=500),
        )

        elapsed = time.monotonic() - start
        assert result == ExecutionResult(exit_code=0, timed_out=True)
        assert elapsed < 5.0

    def test_partial_output_kept(self):
        """Test lines printed before the kill remain in the sink."""
        sink = []
        code = """
            import sys, time
            print("started")
            sys.stdout.flush()
            time.sleep(60)
        """

        result = run_command(
            PYTHON, python_args(code), RunOptions(output_sink=sink, timeout_ms=1000)
        )

        assert result.timed_out
        assert sink == ["started"]
        assert reader_threads() == []

    @posix_only
    def test_timeout_kills_descendants(self, temp_dir):
        """Test the whole tree dies, not only the direct child."""
        pid_file = temp_dir / "grandchild.pid"
        code = f"""
            import subprocess, sys, time
            child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
            with open({str(pid_file)!r}, "w") as f:
                f.write(str(child.pid))
            time.sleep(60)
        """

        result = run_command(PYTHON, python_args(code), RunOptions(timeout_ms=2000))

        assert result.timed_out
        grandchild = int(pid_file.read_text())
        assert wait_until_dead(grandchild)

    @posix_only
    def test_timeout_kills_shell_subprocesses(self, temp_dir):
        """Test a sub-shell started by a shell script is killed too."""
        pid_file = temp_dir / "subshell.pid"
        script = f"sleep 60 & echo $! > {pid_file}; wait"

        result = run_command(
            "/bin/sh", join_arguments(["-c", script]), RunOptions(timeout_ms=1000)
        )

        assert result.timed_out
        assert wait_until_dead(int(pid_file.read_text()))

    @posix_only
    def test_background_descendant_holding_stdout(self, temp_dir):
        """Test the deadline holds when the child exits but a descendant keeps stdout open."""
        pid_file = temp_dir / "background.pid"
        sink = []
        script = f"sleep 60 & echo $! > {pid_file}; echo started"
        start = time.monotonic()

        result = run_command(
            "/bin/sh",
            join_arguments(["-c", script]),
            RunOptions(output_sink=sink, timeout_ms=1000),
        )

        elapsed = time.monotonic() - start
        assert elapsed < 5.0
        assert result == ExecutionResult(exit_code=0, timed_out=True)
        assert sink == ["started"]
        assert reader_threads() == []
        assert wait_until_dead(int(pid_file.read_text()))

    @posix_only
    def test_background_descendant_without_timeout_is_awaited(self):
        """Test that with no timeout, output from a short-lived descendant is collected."""
        sink = []

        result = run_command(
            "/bin/sh",
            join_arguments(["-c", "(sleep 1; echo late) & echo early"]),
            RunOptions(output_sink=sink),
        )

        assert result == ExecutionResult(exit_code=0)
        assert sink == ["early", "late"]


@posix_only
class TestTerminateTree:
    """Tests for terminate_tree()."""

    def test_already_exited_process(self):
        """Test terminating a finished process does not raise."""
        import subprocess

        process = subprocess.Popen([PYTHON, "-c", "pass"], start_new_session=True)
        process.wait()

        terminate_tree(process)

    def test_kills_running_group(self):
        """Test a running process group is killed."""
        import subprocess

        process = subprocess.Popen(
            [PYTHON, "-c", "import time; time.sleep(60)"], start_new_session=True
        )

        terminate_tree(process)

        assert process.wait(timeout=5) != 0
