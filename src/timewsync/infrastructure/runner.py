"""Subprocess wrapper for the external time-tracking tool.

Every call spawns exactly one process and reaps it on every exit path,
including timeout: the process is killed and ``communicate()`` is called
again so no zombie survives a returned result or a raised error.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "timew"

# Argument sets for the four external operations.
EXPORT_ARGS: tuple[str, ...] = ("export", ":day")
STOP_ARGS: tuple[str, ...] = ("stop",)


def start_args(tags: Sequence[str]) -> tuple[str, ...]:
    return ("start", *tags)


def retag_args(tags: Sequence[str]) -> tuple[str, ...]:
    """Replace the open interval's tags; Timewarrior keeps its start time."""
    return ("retag", "@1", *tags)


class RunError(Exception):
    """Base for process-level failures. Never crosses the engine boundary."""


class ToolNotFoundError(RunError):
    """The executable is missing from the execution environment."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"{executable}: command not found")
        self.executable = executable


class TimedOutError(RunError):
    """The process exceeded its timeout and was killed."""

    def __init__(self, args: Sequence[str], timeout: float) -> None:
        super().__init__(f"{' '.join(args)} timed out after {timeout:g}s")
        self.command = tuple(args)
        self.timeout = timeout


class NonZeroExitError(RunError):
    """The process exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str) -> None:
        message = stderr.strip() or f"exit code {exit_code}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


@dataclass(frozen=True)
class RunResult:
    """Captured output of a successful invocation."""

    args: tuple[str, ...]
    stdout: str
    stderr: str
    exit_code: int


class CommandRunner:
    """Invoke the external tool with a timeout.

    Parameters:
        executable: Program name or path (default ``timew``).
    """

    def __init__(self, executable: str = DEFAULT_EXECUTABLE) -> None:
        self.executable = executable

    def run(self, args: Sequence[str], timeout: float) -> RunResult:
        """Run ``executable *args`` and return its captured output.

        Raises:
            ValueError: *args* is empty or *timeout* is not positive.
            ToolNotFoundError: the executable cannot be started.
            TimedOutError: the process outlived *timeout* seconds.
            NonZeroExitError: the process exited non-zero.
        """
        if not args:
            msg = "args must not be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = f"timeout must be positive, got {timeout!r}"
            raise ValueError(msg)

        argv = [self.executable, *args]
        logger.debug("Running %s", " ".join(argv))
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            raise ToolNotFoundError(self.executable) from exc

        with proc:
            try:
                stdout, stderr = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired as exc:
                proc.kill()
                proc.communicate()
                logger.debug("Killed %s after %ss", argv[0], timeout)
                raise TimedOutError(argv, timeout) from exc
            except BaseException:
                proc.kill()
                proc.wait()
                raise

        if proc.returncode != 0:
            raise NonZeroExitError(proc.returncode, stderr)

        return RunResult(
            args=tuple(args),
            stdout=stdout,
            stderr=stderr,
            exit_code=proc.returncode,
        )
