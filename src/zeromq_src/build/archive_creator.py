"""Archive Creator.

This module creates the static library archive from compiled object files,
using ar on GNU-style toolchains and lib.exe on MSVC.
"""

from pathlib import Path
from typing import List, Mapping, Optional

from ..errors import ToolchainStageError
from .command_runner import CommandRunner

BUILD_STAGE = "building"


class ArchiveCreator:
    """Creates static library archives from object files."""

    def __init__(
        self,
        runner: CommandRunner,
        msvc: bool = False,
        show_progress: bool = True,
        env: Optional[Mapping[str, str]] = None
    ):
        """Initialize archive creator.

        Args:
            runner: Command runner used for the archiver invocation
            msvc: Use lib.exe syntax instead of ar syntax
            show_progress: Whether to show archive creation progress
            env: Environment mapping for the archiver process
        """
        self.runner = runner
        self.msvc = msvc
        self.show_progress = show_progress
        self.env = env

    def create_archive(
        self,
        archiver: List[str],
        archive_path: Path,
        object_files: List[Path]
    ) -> Path:
        """Create static library archive from object files.

        Args:
            archiver: Archiver command prefix (ar or lib.exe)
            archive_path: Path for output archive
            object_files: Object files to archive

        Returns:
            Path to generated archive file

        Raises:
            ToolchainStageError: If there is nothing to archive, the archiver
                fails, or no archive was written
        """
        cmd = list(archiver)
        if self.msvc:
            cmd.extend(["/NOLOGO", f"/OUT:{archive_path}"])
        else:
            # 'crs' flags: c=create, r=insert/replace, s=index (ranlib)
            cmd.extend(["crs", str(archive_path)])
        cmd.extend(str(obj) for obj in object_files)

        if not object_files:
            raise ToolchainStageError(BUILD_STAGE, cmd, -1, "No object files provided for archive")

        archive_path.parent.mkdir(parents=True, exist_ok=True)
        if archive_path.exists():
            # ar would append to a stale archive.
            archive_path.unlink()

        if self.show_progress:
            print(f"Creating {archive_path.name} archive from {len(object_files)} object files...")

        self.runner.run(cmd, stage=BUILD_STAGE, cwd=archive_path.parent, env=self.env)

        if not archive_path.exists():
            raise ToolchainStageError(BUILD_STAGE, cmd, 0, f"Archive was not created: {archive_path}")

        if self.show_progress:
            size = archive_path.stat().st_size
            print(f"Created {archive_path.name}: {size:,} bytes ({size / 1024 / 1024:.2f} MB)")

        return archive_path
