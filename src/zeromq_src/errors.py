"""Error types for zeromq-src.

Every failure raised by the build pipeline derives from ZeromqSrcError.
Components raise, they never exit the process; the CLI is the single place
that turns one of these into an exit status.
"""

import shlex
from typing import List, Optional, Sequence


class ZeromqSrcError(Exception):
    """Base exception for all build orchestration failures."""
    pass


class ConfigurationError(ZeromqSrcError):
    """Raised when a required option is missing or invalid.

    Raised before any side effect, so no directory state exists yet.
    """
    pass


class UnsupportedConfigurationError(ConfigurationError):
    """Raised when the options are valid on their own but not for the target."""
    pass


class ToolchainNotFoundError(ZeromqSrcError):
    """Raised when a compiler, archiver, make or cmake binary cannot be run."""

    def __init__(self, command: Sequence[str], reason: str = ""):
        self.command: List[str] = [str(part) for part in command]
        self.reason = reason
        message = f"Toolchain executable not found: {self.command[0] if self.command else '<empty>'}"
        message += f"\n  command: {format_command(self.command)}"
        if reason:
            message += f"\n  reason: {reason}"
        super().__init__(message)


class ToolchainStageError(ZeromqSrcError):
    """Raised when an external toolchain process exits with a failure status.

    Attributes:
        stage: Human readable stage name ("configuring build", "building", ...)
        command: Full command line that was run
        returncode: Exit status of the process
        output: Tail of the captured output, if any
    """

    def __init__(
        self,
        stage: str,
        command: Sequence[str],
        returncode: int,
        output: Optional[str] = None
    ):
        self.stage = stage
        self.command: List[str] = [str(part) for part in command]
        self.returncode = returncode
        self.output = output
        message = f"Error {stage}:\n  command: {format_command(self.command)}\n  exit status: {returncode}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class ArtifactResolutionError(ZeromqSrcError):
    """Raised when an expected output file or directory is missing after a build."""
    pass


class AmbiguousArtifactError(ArtifactResolutionError):
    """Raised when a prefix lookup matches more than one file."""
    pass


class ProbeError(ZeromqSrcError):
    """Raised when a capability probe cannot invoke the compiler at all.

    A probe that runs and reports the capability as absent is not an error.
    """
    pass


def format_command(command: Sequence[str]) -> str:
    """Render a command line the way a shell user would type it."""
    return " ".join(shlex.quote(str(part)) for part in command)
