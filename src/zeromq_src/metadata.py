"""Artifact records and the metadata protocol consumed by the link step.

A successful build is described by an Artifacts record. MetadataReporter
renders it as key/value lines:

    link-search-path=<lib_dir>
    link-library=<kind><name>        (kind is "", "dylib=" or "static=")
    include-path=<include_dir>
    lib-path=<lib_dir>
    out-path=<out_dir>               (only when the build tree is retained)
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from .errors import ArtifactResolutionError


class LinkKind(Enum):
    """How the consumer links a library."""

    STATIC = "static"
    DYNAMIC = "dylib"
    UNSPECIFIED = ""

    @property
    def prefix(self) -> str:
        """Prefix used in a link-library line."""
        return f"{self.value}=" if self.value else ""


@dataclass(frozen=True)
class Library:
    """One library the consumer must link."""

    name: str
    kind: LinkKind = LinkKind.UNSPECIFIED

    def render(self) -> str:
        return f"{self.kind.prefix}{self.name}"


@dataclass(frozen=True)
class Artifacts:
    """Locations and link instructions produced by a successful build."""

    include_dir: Path
    lib_dir: Path
    libraries: Tuple[Library, ...]
    out_dir: Optional[Path] = None
    link_search_dirs: Tuple[Path, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.libraries:
            raise ArtifactResolutionError("A successful build must report at least one library")

    @property
    def primary_library(self) -> Library:
        return self.libraries[0]


class MetadataReporter:
    """Serializes Artifacts into the consumer's key/value protocol."""

    def __init__(self, prefix: str = "", stream: Optional[TextIO] = None):
        """Initialize the reporter.

        Args:
            prefix: String prepended to every line (e.g. "cargo:")
            stream: Output stream (defaults to stdout)
        """
        self.prefix = prefix
        self.stream = stream

    def lines(self, artifacts: Artifacts) -> List[str]:
        """Return the metadata lines for a build, in protocol order."""
        lines = [f"link-search-path={artifacts.lib_dir}"]
        for extra_dir in artifacts.link_search_dirs:
            lines.append(f"link-search-path={extra_dir}")
        for library in artifacts.libraries:
            lines.append(f"link-library={library.render()}")
        lines.append(f"include-path={artifacts.include_dir}")
        lines.append(f"lib-path={artifacts.lib_dir}")
        if artifacts.out_dir is not None:
            lines.append(f"out-path={artifacts.out_dir}")
        return [f"{self.prefix}{line}" for line in lines]

    def report(self, artifacts: Artifacts) -> None:
        """Write the metadata lines to the output stream."""
        stream = self.stream or sys.stdout
        for line in self.lines(artifacts):
            print(line, file=stream)
        stream.flush()
