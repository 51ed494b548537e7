"""zeromq-src: builds the vendored libzmq and reports where the artifacts are.

Typical use from a build script:

    from zeromq_src import Build, Environment, MetadataReporter

    env = Environment.from_os_environ()
    artifacts = Build().link_static(True).build_debug(False).build(env)
    MetadataReporter(prefix="cargo:").report(artifacts)
"""

from pathlib import Path

__version__ = "0.3.0"

VENDOR_DIR_NAME = "vendor"


def source_dir() -> Path:
    """Path of the vendored libzmq tree shipped next to this package."""
    return Path(__file__).resolve().parent / VENDOR_DIR_NAME


from .config import Build, BuildOptions, Environment, LibLocation, ToolchainMode  # noqa: E402
from .errors import (  # noqa: E402
    AmbiguousArtifactError,
    ArtifactResolutionError,
    ConfigurationError,
    ProbeError,
    ToolchainNotFoundError,
    ToolchainStageError,
    UnsupportedConfigurationError,
    ZeromqSrcError,
)
from .metadata import Artifacts, Library, LinkKind, MetadataReporter  # noqa: E402

__all__ = [
    "AmbiguousArtifactError",
    "ArtifactResolutionError",
    "Artifacts",
    "Build",
    "BuildOptions",
    "ConfigurationError",
    "Environment",
    "LibLocation",
    "Library",
    "LinkKind",
    "MetadataReporter",
    "ProbeError",
    "ToolchainMode",
    "ToolchainNotFoundError",
    "ToolchainStageError",
    "UnsupportedConfigurationError",
    "ZeromqSrcError",
    "source_dir",
]
