"""Target platform and toolchain discovery.

This module classifies target triples, locates toolchain executables and
probes the toolchain for optional capabilities.
"""

from .platform_utils import PlatformClassifier, PlatformFamily, PlatformInfo
from .probes import CapabilityProber, ProbeKind
from .toolchain_binaries import ToolchainBinaryFinder

__all__ = [
    "CapabilityProber",
    "PlatformClassifier",
    "PlatformFamily",
    "PlatformInfo",
    "ProbeKind",
    "ToolchainBinaryFinder",
]
