"""Artifact Resolver.

This module locates the installed library and headers after a successful
toolchain run and assembles the Artifacts record for the consumer.

MSVC static builds name their archive after the toolset and version (for
example libzmq-v143-mt-s-4_3_5.lib), so the single file starting with
"lib<name>" is renamed to the canonical "<name>.lib".
"""

import logging
import os
from pathlib import Path

from ..errors import ArtifactResolutionError
from ..metadata import Artifacts, LinkKind
from ..toolchain.platform_utils import PlatformFamily, PlatformInfo
from .build_plan import BuildPlan
from .build_utils import locate_by_prefix

LIB_DIR_CANDIDATES = ("lib", "lib64")


class ArtifactResolver:
    """Finds build outputs under the install root."""

    def resolve(self, out_dir: Path, platform: PlatformInfo, plan: BuildPlan) -> Artifacts:
        """Locate the build outputs and return the artifact record.

        Args:
            out_dir: Output root of the build invocation
            platform: Classified target platform
            plan: The plan that was executed (library table, search dirs)

        Returns:
            Artifacts describing include dir, lib dir and libraries

        Raises:
            ArtifactResolutionError: If any expected output is missing
        """
        install_dir = out_dir / "install"
        lib_dir = self.find_lib_dir(install_dir)

        include_dir = install_dir / "include"
        if not include_dir.is_dir():
            raise ArtifactResolutionError(f"Include directory not found: {include_dir}")

        primary = plan.libraries[0] if plan.libraries else None
        if primary is None:
            raise ArtifactResolutionError("Build plan does not name a primary library")

        if platform.family == PlatformFamily.MSVC and primary.kind == LinkKind.STATIC:
            self.canonicalize_msvc_archive(lib_dir, primary.name)

        artifacts = Artifacts(
            include_dir=include_dir,
            lib_dir=lib_dir,
            libraries=tuple(plan.libraries),
            out_dir=out_dir,
            link_search_dirs=tuple(plan.link_search_dirs),
        )
        logging.info(f"Resolved artifacts: lib_dir={lib_dir}, include_dir={include_dir}")
        return artifacts

    @staticmethod
    def find_lib_dir(install_dir: Path) -> Path:
        """Return the first readable lib directory under the install root.

        Raises:
            ArtifactResolutionError: If neither lib nor lib64 is usable
        """
        for name in LIB_DIR_CANDIDATES:
            candidate = install_dir / name
            if candidate.is_dir() and os.access(candidate, os.R_OK | os.X_OK):
                return candidate
        tried = ", ".join(str(install_dir / name) for name in LIB_DIR_CANDIDATES)
        raise ArtifactResolutionError(f"No readable library directory found (tried {tried})")

    @staticmethod
    def canonicalize_msvc_archive(lib_dir: Path, name: str) -> Path:
        """Rename the one archive starting with lib<name> to <name>.lib.

        Args:
            lib_dir: Directory holding the installed archive
            name: Canonical library name, e.g. "zmq"

        Returns:
            Path of the renamed archive

        Raises:
            ArtifactResolutionError: If no archive matches
            AmbiguousArtifactError: If more than one archive matches
        """
        found = locate_by_prefix(lib_dir, f"lib{name}", suffix=".lib")
        canonical = lib_dir / f"{name}.lib"
        if canonical.exists():
            canonical.unlink()
        found.rename(canonical)
        logging.info(f"Renamed {found.name} to {canonical.name}")
        return canonical
