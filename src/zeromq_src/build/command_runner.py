"""Supervised execution of external toolchain processes.

Every configure, make, cmake, compiler and archiver invocation goes through a
CommandRunner. A failure status is turned into a ToolchainStageError naming
the stage, the full command line and the exit status; an executable that
cannot be started becomes a ToolchainNotFoundError. Nothing is retried.

RecordingCommandRunner records commands instead of running them, for dry
runs and tests.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ..config.environment import Environment
from ..errors import ToolchainNotFoundError, ToolchainStageError, format_command
from ..interrupt_utils import handle_keyboard_interrupt_properly

# Lines of captured output kept in a stage error.
OUTPUT_TAIL_LINES = 40


@dataclass
class CommandResult:
    """Outcome of an executed command."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


class CommandRunner(ABC):
    """Command runner interface."""

    @abstractmethod
    def run(
        self,
        command: Sequence[str],
        stage: str,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None
    ) -> CommandResult:
        """Run a command to completion and check its exit status.

        Args:
            command: Command line
            stage: Stage name used in error messages ("building", ...)
            cwd: Working directory
            env: Complete environment for the child process
            timeout: Seconds before the process is treated as failed

        Returns:
            CommandResult for a successful run

        Raises:
            ToolchainNotFoundError: If the executable cannot be started
            ToolchainStageError: If the process exits with a failure status
        """
        pass


class SubprocessCommandRunner(CommandRunner):
    """Runs commands with subprocess, blocking until each one exits."""

    def __init__(self, verbose: bool = False):
        """Initialize the runner.

        Args:
            verbose: Echo captured output of successful commands
        """
        self.verbose = verbose

    def run(
        self,
        command: Sequence[str],
        stage: str,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None
    ) -> CommandResult:
        cmd = [str(part) for part in command]
        logging.info(f"[{stage}] running: {format_command(cmd)}" + (f" (cwd={cwd})" if cwd else ""))

        try:
            process = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ToolchainNotFoundError(cmd, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise ToolchainStageError(stage, cmd, -1, f"timed out after {timeout} seconds") from e
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)
            raise  # Never reached, but satisfies type checker

        result = CommandResult(
            command=cmd,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )

        if result.returncode != 0:
            logging.error(f"[{stage}] failed with exit status {result.returncode}")
            raise ToolchainStageError(stage, cmd, result.returncode, _output_tail(result))

        if self.verbose:
            if result.stdout:
                print(result.stdout, end="")
            if result.stderr:
                print(result.stderr, end="")

        return result


@dataclass
class RecordedCommand:
    command: List[str]
    stage: str
    cwd: Optional[str]
    env: Dict[str, str] = field(default_factory=dict)


class RecordingCommandRunner(CommandRunner):
    """Records commands instead of executing them.

    Args:
        failures: Optional map of stage name -> exit status to simulate a
            failing stage
    """

    def __init__(self, failures: Optional[Mapping[str, int]] = None):
        self.commands: List[RecordedCommand] = []
        self.failures = dict(failures or {})

    def run(
        self,
        command: Sequence[str],
        stage: str,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None
    ) -> CommandResult:
        cmd = [str(part) for part in command]
        self.commands.append(
            RecordedCommand(
                command=cmd,
                stage=stage,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else {},
            )
        )
        if stage in self.failures:
            raise ToolchainStageError(stage, cmd, self.failures[stage])
        return CommandResult(command=cmd, returncode=0)

    def stages(self) -> List[str]:
        """Stage names in the order they were run."""
        return [record.stage for record in self.commands]

    def iter_formatted(self) -> List[str]:
        lines = []
        for record in self.commands:
            parts = ["[dry-run]", record.stage]
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(format_command(record.command))
            lines.append(" ".join(parts))
        return lines


def _output_tail(result: CommandResult) -> str:
    output = (result.stdout + result.stderr).rstrip()
    lines = output.splitlines()
    if len(lines) > OUTPUT_TAIL_LINES:
        lines = ["..."] + lines[-OUTPUT_TAIL_LINES:]
    return "\n".join(lines)
