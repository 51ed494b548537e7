"""Build options and the chained builder that produces them.

BuildOptions is immutable: it is assembled once through Build and then
passed by value to the planner, the driver and the resolver.

Example:
    >>> options = (
    ...     Build()
    ...     .build_debug(False)
    ...     .link_static(True)
    ...     .enable_draft(True)
    ...     .target("x86_64-unknown-linux-gnu")
    ...     .host("x86_64-unknown-linux-gnu")
    ...     .out_dir(Path("/tmp/zmq"))
    ...     .options()
    ... )
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

from ..errors import ConfigurationError
from .environment import Environment

if TYPE_CHECKING:
    from ..metadata import Artifacts


class ToolchainMode(Enum):
    """How the vendored tree gets compiled."""

    AUTOTOOLS = "autotools"
    CMAKE = "cmake"
    DIRECT_COMPILE = "direct"

    @classmethod
    def from_name(cls, name: str) -> "ToolchainMode":
        """Parse a mode from its CLI spelling (autotools, cmake, direct)."""
        for mode in cls:
            if mode.value == name.lower():
                return mode
        choices = ", ".join(mode.value for mode in cls)
        raise ConfigurationError(f"Unknown toolchain mode '{name}' (expected one of: {choices})")


@dataclass(frozen=True)
class LibLocation:
    """Location of an externally built library (lib dir + include dir)."""

    lib_dir: Path
    include_dir: Path


@dataclass(frozen=True)
class BuildOptions:
    """User supplied configuration for one build invocation."""

    out_dir: Path
    target_triple: str
    host_triple: str
    debug: bool = False
    link_static: bool = False
    enable_draft_api: bool = False
    enable_curve: bool = False
    enable_perf_tool: bool = False
    external_crypto_lib: Optional[LibLocation] = None
    configure_path: Optional[Path] = None
    configure_args: Tuple[str, ...] = field(default_factory=tuple)
    mode: ToolchainMode = ToolchainMode.DIRECT_COMPILE

    @property
    def is_cross_compile(self) -> bool:
        return self.host_triple != self.target_triple

    @property
    def build_dir(self) -> Path:
        """Directory holding the copied source tree and intermediates."""
        return self.out_dir / "build"

    @property
    def install_dir(self) -> Path:
        """Directory holding the final lib/ and include/ trees."""
        return self.out_dir / "install"

    @property
    def source_copy_dir(self) -> Path:
        return self.build_dir / "src"

    def validate(self) -> None:
        """Check the options that must be present before anything runs.

        Raises:
            ConfigurationError: If the target or host triple or the output
                directory is missing
        """
        if not self.target_triple:
            raise ConfigurationError("Target triple is not set (pass --target or set TARGET)")
        if not self.host_triple:
            raise ConfigurationError("Host triple is not set (pass --host or set HOST)")
        if self.out_dir is None:
            raise ConfigurationError("Output directory is not set (pass --out-dir or set OUT_DIR)")


class Build:
    """Chained builder for BuildOptions.

    Each setter returns the builder, so a configuration reads as one
    expression. Unset target, host, output directory and debug flag fall back
    to the Environment passed to options() or build().
    """

    def __init__(self):
        self._out_dir: Optional[Path] = None
        self._target: Optional[str] = None
        self._host: Optional[str] = None
        self._debug: Optional[bool] = None
        self._link_static = True
        self._enable_draft = False
        self._enable_curve = False
        self._perf_tool = False
        self._libsodium: Optional[LibLocation] = None
        self._configure_path: Optional[Path] = None
        self._configure_args: Tuple[str, ...] = ()
        self._mode = ToolchainMode.DIRECT_COMPILE

    def out_dir(self, path: Path) -> "Build":
        self._out_dir = Path(path)
        return self

    def target(self, target: str) -> "Build":
        self._target = target
        return self

    def host(self, host: str) -> "Build":
        self._host = host
        return self

    def build_debug(self, enabled: bool) -> "Build":
        self._debug = enabled
        return self

    def link_static(self, enabled: bool) -> "Build":
        self._link_static = enabled
        return self

    def enable_draft(self, enabled: bool) -> "Build":
        self._enable_draft = enabled
        return self

    def enable_curve(self, enabled: bool) -> "Build":
        self._enable_curve = enabled
        return self

    def perf_tool(self, enabled: bool) -> "Build":
        self._perf_tool = enabled
        return self

    def with_libsodium(self, location: Optional[LibLocation]) -> "Build":
        """Use an external libsodium instead of the bundled tweetnacl."""
        self._libsodium = location
        return self

    def configure_path(self, path: Path) -> "Build":
        self._configure_path = Path(path)
        return self

    def args(self, args: Iterable[str]) -> "Build":
        """Extra arguments appended to the configure invocation."""
        self._configure_args = tuple(args)
        return self

    def mode(self, mode: ToolchainMode) -> "Build":
        self._mode = mode
        return self

    def options(self, env: Optional[Environment] = None) -> BuildOptions:
        """Freeze the builder into validated BuildOptions.

        Args:
            env: Environment used for fallbacks (defaults to an empty one)

        Raises:
            ConfigurationError: If a required value is missing
        """
        env = env or Environment()

        out_dir = self._out_dir or env.out_dir
        if out_dir is None:
            raise ConfigurationError("Output directory is not set (pass --out-dir or set OUT_DIR)")

        debug = self._debug if self._debug is not None else env.debug_profile

        options = BuildOptions(
            out_dir=out_dir,
            target_triple=self._target or env.target or "",
            host_triple=self._host or env.host or "",
            debug=debug,
            link_static=self._link_static,
            enable_draft_api=self._enable_draft,
            enable_curve=self._enable_curve,
            enable_perf_tool=self._perf_tool,
            external_crypto_lib=self._libsodium,
            configure_path=self._configure_path,
            configure_args=self._configure_args,
            mode=self._mode,
        )
        options.validate()
        return options

    def build(self, env: Optional[Environment] = None, show_progress: bool = True) -> "Artifacts":
        """Run the full pipeline and return the resolved artifacts.

        Raises:
            ZeromqSrcError: On any configuration, toolchain or resolution failure
        """
        from ..build.orchestrator import BuildOrchestrator

        env = env or Environment.from_os_environ()
        orchestrator = BuildOrchestrator(env=env, show_progress=show_progress)
        return orchestrator.build(self.options(env))

