"""Platform classification for target triples.

This module maps a target triple onto the platform family that drives every
platform specific decision in the build plan.

Supported Families:
    - msvc:        *-pc-windows-msvc
    - windows-gnu: *-pc-windows-gnu, *-pc-windows-gnullvm
    - linux:       *-unknown-linux-gnu, *-linux-android, *-linux-musl, ...
    - apple:       *-apple-darwin, *-apple-ios, ...
    - bsd:         *-unknown-freebsd, *-unknown-openbsd, *-unknown-netbsd, *-unknown-dragonfly
    - other:       anything else (most portable settings)
"""

from dataclasses import dataclass, replace
from enum import Enum


class PlatformFamily(Enum):
    """Platform family of a target triple."""

    MSVC = "msvc"
    WINDOWS_GNU = "windows-gnu"
    LINUX = "linux"
    APPLE = "apple"
    BSD = "bsd"
    OTHER = "other"

    @property
    def is_windows(self) -> bool:
        return self in (PlatformFamily.MSVC, PlatformFamily.WINDOWS_GNU)

    @property
    def is_unix(self) -> bool:
        return self in (PlatformFamily.LINUX, PlatformFamily.APPLE, PlatformFamily.BSD)


_BSD_MARKERS = ("freebsd", "openbsd", "netbsd", "dragonfly")


@dataclass(frozen=True)
class PlatformInfo:
    """Classified target plus the capability flags reported by the prober.

    The capability flags default to the conservative answer (absent) until
    the prober fills them in.
    """

    family: PlatformFamily
    target_triple: str
    has_strlcpy: bool = False
    has_cxx11: bool = False
    has_ipc_headers: bool = False

    def with_capabilities(
        self,
        has_strlcpy: bool,
        has_cxx11: bool,
        has_ipc_headers: bool
    ) -> "PlatformInfo":
        """Return a copy with the given capability flags."""
        return replace(
            self,
            has_strlcpy=has_strlcpy,
            has_cxx11=has_cxx11,
            has_ipc_headers=has_ipc_headers,
        )


class PlatformClassifier:
    """Classifies target triples by substring content.

    Classification is total and depends only on the triple, never on the
    machine running the build.
    """

    @staticmethod
    def classify(target_triple: str) -> PlatformFamily:
        """Map a target triple onto its platform family.

        Args:
            target_triple: Triple such as "x86_64-unknown-linux-gnu"

        Returns:
            The platform family; unrecognised triples map to OTHER
        """
        triple = target_triple.lower()

        if "msvc" in triple:
            return PlatformFamily.MSVC
        if "windows" in triple and "gnu" in triple:
            return PlatformFamily.WINDOWS_GNU
        if "linux" in triple:
            return PlatformFamily.LINUX
        if "apple" in triple or "darwin" in triple:
            return PlatformFamily.APPLE
        if any(marker in triple for marker in _BSD_MARKERS):
            return PlatformFamily.BSD
        return PlatformFamily.OTHER

    @staticmethod
    def platform_info(target_triple: str) -> PlatformInfo:
        """Classify a triple into a PlatformInfo with conservative capabilities."""
        return PlatformInfo(
            family=PlatformClassifier.classify(target_triple),
            target_triple=target_triple,
        )
