"""Command runner for external build tools.

This module handles:
- Executing git, bundle and friends with an explicit cwd and environment
- Capturing stdout/stderr combined
- Optionally echoing output line by line as the tool produces it

Commands block until the process exits. There is no timeout: a hung tool
hangs the build.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from slugpack import output
from slugpack.types import BuildError

logger = logging.getLogger(__name__)


class CommandExecutionError(BuildError):
    """Raised when a command cannot be started."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "execution_error",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


@dataclass
class CommandResult:
    """Result of a command execution.

    Attributes:
        command: The command that was executed, shell-quoted.
        exit_code: Process exit code.
        output: Combined stdout and stderr.
        started_at: Start time.
        finished_at: Finish time.
    """

    command: str
    exit_code: int
    output: str
    started_at: datetime
    finished_at: datetime

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def run_command(
    cmd: Sequence[str],
    cwd: Path,
    env: Mapping[str, str],
    echo: bool = False,
) -> CommandResult:
    """Execute a command and capture its combined output.

    Args:
        cmd: Command as list of strings.
        cwd: Working directory for the command.
        env: Complete environment for the child process.
        echo: Print each output line as it arrives.

    Returns:
        CommandResult with execution details. A nonzero exit is reported,
        not raised.

    Raises:
        CommandExecutionError: If the command cannot be started.
    """
    cmd_str = shlex.join(cmd)
    logger.debug("Executing: %s (cwd=%s)", cmd_str, cwd)

    started_at = datetime.now(timezone.utc)
    lines: list[str] = []

    try:
        with subprocess.Popen(
            list(cmd),
            cwd=cwd,
            env=dict(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        ) as proc:
            assert proc.stdout is not None
            for line in proc.stdout:
                lines.append(line)
                if echo:
                    output.echo(line)
            exit_code = proc.wait()

    except OSError as e:
        error_message = f"Failed to execute {cmd_str}: {e}"
        logger.error(error_message)
        raise CommandExecutionError(
            error_message,
            exit_code=None,
            code="execution_error",
        ) from e

    finished_at = datetime.now(timezone.utc)
    duration = (finished_at - started_at).total_seconds()

    if exit_code == 0:
        logger.debug("%s finished in %.1fs", cmd_str, duration)
    else:
        logger.warning("%s exited with code %d after %.1fs", cmd_str, exit_code, duration)

    return CommandResult(
        command=cmd_str,
        exit_code=exit_code,
        output="".join(lines),
        started_at=started_at,
        finished_at=finished_at,
    )


__all__ = [
    "CommandExecutionError",
    "CommandResult",
    "run_command",
]
