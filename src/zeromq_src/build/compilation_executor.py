"""Compilation Executor.

This module compiles single translation units for the direct compilation
mode.

Design:
    - Runs the compiler through a CommandRunner, so failures carry the stage
      name, the full command line and the exit status
    - Writes include paths to a response file (libzmq plus an external
      libsodium can push the command line past Windows limits)
    - Emits GNU (-c, -o) or MSVC (/c, /Fo) object output syntax
"""

from pathlib import Path
from typing import List, Mapping, Optional

from ..errors import ToolchainStageError
from .command_runner import CommandRunner

BUILD_STAGE = "building"


class CompilationExecutor:
    """Executes compilation commands with response file support."""

    def __init__(
        self,
        build_dir: Path,
        runner: CommandRunner,
        msvc: bool = False,
        show_progress: bool = True,
        env: Optional[Mapping[str, str]] = None
    ):
        """Initialize compilation executor.

        Args:
            build_dir: Build directory for response files
            runner: Command runner used for every compiler invocation
            msvc: Emit cl.exe syntax instead of GNU syntax
            show_progress: Whether to print a line per compiled file
            env: Environment mapping for the compiler processes
        """
        self.build_dir = build_dir
        self.runner = runner
        self.msvc = msvc
        self.show_progress = show_progress
        self.env = env

    def compile_source(
        self,
        compiler: List[str],
        source_path: Path,
        output_path: Path,
        compile_flags: List[str],
        include_flags: List[str]
    ) -> Path:
        """Compile a single source file.

        Args:
            compiler: Compiler command prefix (executable plus any wrapper)
            source_path: Path to source file
            output_path: Path for output object file
            compile_flags: Compilation flags including defines
            include_flags: Rendered include flags (-I... or /I...)

        Returns:
            Path to generated object file

        Raises:
            ToolchainStageError: If the source is missing or compilation fails
            ToolchainNotFoundError: If the compiler cannot be started
        """
        cmd = self.build_command(compiler, source_path, output_path, compile_flags, include_flags)
        if not source_path.exists():
            raise ToolchainStageError(BUILD_STAGE, cmd, -1, f"Source file not found: {source_path}")

        output_path.parent.mkdir(parents=True, exist_ok=True)

        if self.show_progress:
            print(f"Compiling {source_path.name}...")

        self.runner.run(cmd, stage=BUILD_STAGE, cwd=self.build_dir, env=self.env)
        return output_path

    def build_command(
        self,
        compiler: List[str],
        source_path: Path,
        output_path: Path,
        compile_flags: List[str],
        include_flags: List[str]
    ) -> List[str]:
        """Build the compiler command line for one translation unit."""
        response_file = self._write_response_file(include_flags)

        cmd = list(compiler)
        cmd.extend(compile_flags)
        cmd.append(f"@{response_file}")
        if self.msvc:
            cmd.extend(["/c", str(source_path), f"/Fo{output_path}"])
        else:
            cmd.extend(["-c", str(source_path), "-o", str(output_path)])
        return cmd

    def _write_response_file(self, include_flags: List[str]) -> Path:
        """Write include flags to the shared response file.

        Args:
            include_flags: Rendered include flags

        Returns:
            Path to generated response file
        """
        response_file = self.build_dir / "includes.rsp"
        response_file.parent.mkdir(parents=True, exist_ok=True)

        with open(response_file, 'w') as f:
            f.write('\n'.join(include_flags))

        return response_file
