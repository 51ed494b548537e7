"""Build Plan Builder.

This module derives the complete build plan for one invocation from the user
options and the classified, probed target platform.

Design:
    - Pure and deterministic: no filesystem access, no environment reads
    - Feature toggles become defines only when enabled; a disabled toggle
      leaves its define out entirely
    - Exactly one I/O thread poller define per platform family
    - External libsodium and the bundled tweetnacl are mutually exclusive
    - The same plan feeds all three toolchain modes: defines and include
      paths for direct compilation, cache variables for CMake, and configure
      arguments for autotools
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.options import BuildOptions, ToolchainMode
from ..errors import UnsupportedConfigurationError
from ..metadata import Library, LinkKind
from ..toolchain.platform_utils import PlatformFamily, PlatformInfo
from . import sources
from .build_utils import sanitize_sh_path

PRIMARY_LIBRARY = "zmq"

POLLER_DEFINE_PREFIX = "ZMQ_IOTHREAD_POLLER_USE_"

# One poller per family; OTHER gets poll(2), the most portable choice.
_POLLERS = {
    PlatformFamily.MSVC: "select",
    PlatformFamily.WINDOWS_GNU: "select",
    PlatformFamily.LINUX: "epoll",
    PlatformFamily.APPLE: "kqueue",
    PlatformFamily.BSD: "kqueue",
    PlatformFamily.OTHER: "poll",
}

_LINUX_DEFINES = [
    "_GNU_SOURCE",
    "ZMQ_HAVE_EVENTFD",
    "ZMQ_HAVE_IFADDRS",
    "ZMQ_HAVE_SO_BINDTODEVICE",
    "ZMQ_HAVE_SO_PEERCRED",
    "ZMQ_HAVE_SOCK_CLOEXEC",
    "ZMQ_HAVE_TCP_KEEPCNT",
    "ZMQ_HAVE_TCP_KEEPIDLE",
    "ZMQ_HAVE_TCP_KEEPINTVL",
    "ZMQ_HAVE_UIO",
    "HAVE_ACCEPT4",
    "HAVE_IF_NAMETOINDEX",
    "HAVE_STRNLEN",
]

_KQUEUE_FAMILY_DEFINES = [
    "ZMQ_HAVE_IFADDRS",
    "ZMQ_HAVE_TCP_KEEPALIVE",
    "ZMQ_HAVE_UIO",
    "HAVE_IF_NAMETOINDEX",
    "HAVE_STRNLEN",
]

# Flags that avoid a known link failure with whole-program optimization.
MSVC_EXTRA_FLAGS = ["/GL-", "/EHsc"]


@dataclass
class BuildPlan:
    """Everything the toolchain driver needs, derived ahead of time.

    Attributes:
        family: Platform family the plan was derived for
        config_label: "Debug" or "Release", forwarded verbatim
        source_root: Root of the copied vendored tree
        install_dir: Install prefix for final artifacts
        defines: Preprocessor define name -> value (None for a bare define)
        include_dirs: Include search order, first match wins
        c_sources / cxx_sources: Paths relative to source_root
        cflags: Flags for every translation unit
        cxxflags: Flags for C++ translation units only
        link_search_dirs: Extra library directories for the consumer
        libraries: Libraries the consumer links, primary library first
        configure_args: Arguments for an autotools configure run
        configure_env: Extra environment for configure (CPPFLAGS, LDFLAGS)
        cmake_options: CMake cache variables besides the defines
        cmake_generator: Pinned generator, or None for CMake's default
        cmake_platform: Architecture passed to a Visual Studio generator
        platform_shim_dir: Directory that must hold an empty platform.hpp
        configure_path: Configure script override for autotools builds
    """

    family: PlatformFamily
    config_label: str
    source_root: Path
    install_dir: Path
    defines: Dict[str, Optional[str]] = field(default_factory=dict)
    include_dirs: List[Path] = field(default_factory=list)
    c_sources: List[str] = field(default_factory=list)
    cxx_sources: List[str] = field(default_factory=list)
    cflags: List[str] = field(default_factory=list)
    cxxflags: List[str] = field(default_factory=list)
    link_search_dirs: List[Path] = field(default_factory=list)
    libraries: List[Library] = field(default_factory=list)
    configure_args: List[str] = field(default_factory=list)
    configure_env: Dict[str, str] = field(default_factory=dict)
    cmake_options: Dict[str, str] = field(default_factory=dict)
    cmake_generator: Optional[str] = None
    cmake_platform: Optional[str] = None
    platform_shim_dir: Optional[Path] = None
    configure_path: Optional[Path] = None
    primary_library: str = PRIMARY_LIBRARY

    def define(self, name: str, value: Optional[str] = "1") -> None:
        """Add or override a define; later definitions win."""
        self.defines[name] = value

    def add_include_dir(self, path: Path) -> None:
        """Append an include directory unless it is already present."""
        if path not in self.include_dirs:
            self.include_dirs.append(path)

    def poller_defines(self) -> List[str]:
        """Names of the I/O thread poller defines in the plan."""
        return [name for name in self.defines if name.startswith(POLLER_DEFINE_PREFIX)]

    @property
    def is_msvc(self) -> bool:
        return self.family == PlatformFamily.MSVC

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "family": self.family.value,
            "config": self.config_label,
            "source_root": str(self.source_root),
            "install_dir": str(self.install_dir),
            "defines": dict(sorted(self.defines.items())),
            "include_dirs": [str(path) for path in self.include_dirs],
            "c_sources": list(self.c_sources),
            "cxx_sources": list(self.cxx_sources),
            "cflags": list(self.cflags),
            "cxxflags": list(self.cxxflags),
            "link_search_dirs": [str(path) for path in self.link_search_dirs],
            "libraries": [library.render() for library in self.libraries],
            "configure_args": list(self.configure_args),
            "configure_env": dict(self.configure_env),
            "cmake_options": dict(self.cmake_options),
            "cmake_generator": self.cmake_generator,
            "cmake_platform": self.cmake_platform,
            "platform_shim_dir": str(self.platform_shim_dir) if self.platform_shim_dir else None,
        }


class BuildPlanBuilder:
    """Derives a BuildPlan from BuildOptions and PlatformInfo."""

    def build_plan(self, options: BuildOptions, platform: PlatformInfo) -> BuildPlan:
        """Derive the build plan.

        Args:
            options: Validated build options
            platform: Classified target with capability flags

        Returns:
            A new BuildPlan

        Raises:
            UnsupportedConfigurationError: If the options cannot be built for
                this platform or toolchain mode
        """
        self.check_supported(options, platform)

        plan = BuildPlan(
            family=platform.family,
            config_label="Debug" if options.debug else "Release",
            source_root=options.source_copy_dir,
            install_dir=options.install_dir,
            configure_path=options.configure_path,
        )

        self._add_base(plan, options)
        self._add_feature_defines(plan, options)
        self._add_linkage(plan, options)
        self._add_crypto(plan, options)
        self._add_platform(plan, options, platform)
        self._add_capabilities(plan, platform)
        self._add_optimization(plan, options)
        self._add_libraries(plan, options, platform)
        self._add_configure_args(plan, options)
        self._add_cmake_options(plan, options)
        return plan

    def check_supported(self, options: BuildOptions, platform: PlatformInfo) -> None:
        """Reject option combinations that cannot be built for the target.

        Raises:
            UnsupportedConfigurationError: If the combination is unsupported
        """
        if platform.family == PlatformFamily.MSVC and not options.link_static:
            raise UnsupportedConfigurationError(
                f"Dynamic linking is not supported for MSVC targets ({options.target_triple}); "
                "enable static linking"
            )
        if options.mode == ToolchainMode.DIRECT_COMPILE and not options.link_static:
            raise UnsupportedConfigurationError(
                "Direct compilation only produces a static archive; "
                "enable static linking or use the cmake or autotools mode"
            )

    def _add_base(self, plan: BuildPlan, options: BuildOptions) -> None:
        root = plan.source_root
        plan.add_include_dir(root / "include")
        plan.add_include_dir(root / "src")
        plan.cxx_sources.extend(sources.cxx_sources())
        plan.define("ZMQ_BUILD_TESTS", "OFF")
        plan.define("ZMQ_USE_BUILTIN_SHA1")
        plan.define("ZMQ_HAVE_WS")

    def _add_feature_defines(self, plan: BuildPlan, options: BuildOptions) -> None:
        if options.enable_draft_api:
            plan.define("ZMQ_BUILD_DRAFT_API")
        if options.enable_curve:
            plan.define("ZMQ_HAVE_CURVE")
        if options.enable_perf_tool:
            plan.define("ZMQ_BUILD_PERF_TOOL")

    def _add_linkage(self, plan: BuildPlan, options: BuildOptions) -> None:
        if options.link_static:
            plan.define("BUILD_STATIC", "ON")
            plan.define("BUILD_SHARED", "OFF")
            if plan.family.is_windows:
                # Drops __declspec(dllimport) from the public API.
                plan.define("ZMQ_STATIC")
        else:
            plan.define("BUILD_STATIC", "OFF")
            plan.define("BUILD_SHARED", "ON")

    def _add_crypto(self, plan: BuildPlan, options: BuildOptions) -> None:
        external = options.external_crypto_lib
        if external is not None:
            plan.define("ZMQ_USE_LIBSODIUM")
            plan.add_include_dir(external.include_dir)
            plan.link_search_dirs.append(external.lib_dir)
            plan.c_sources.extend(sources.c_sources(bundled_crypto=False))
        else:
            plan.define("ZMQ_USE_TWEETNACL")
            plan.c_sources.extend(sources.c_sources(bundled_crypto=True))

    def _add_platform(self, plan: BuildPlan, options: BuildOptions, platform: PlatformInfo) -> None:
        family = platform.family
        poller = _POLLERS[family]
        plan.define(f"{POLLER_DEFINE_PREFIX}{poller.upper()}")

        if family.is_windows:
            plan.define("ZMQ_POLL_BASED_ON_SELECT")
            plan.define("_WIN32_WINNT", "0x0600")
            plan.define("ZMQ_HAVE_WINDOWS")
        else:
            plan.define("ZMQ_POLL_BASED_ON_POLL")

        if family == PlatformFamily.LINUX:
            for name in _LINUX_DEFINES:
                plan.define(name)
        elif family in (PlatformFamily.APPLE, PlatformFamily.BSD):
            for name in _KQUEUE_FAMILY_DEFINES:
                plan.define(name)
        elif family == PlatformFamily.WINDOWS_GNU:
            plan.define("HAVE_STRNLEN")

        if family == PlatformFamily.MSVC:
            plan.add_include_dir(plan.source_root / sources.MSVC_PLATFORM_DIR)
            plan.cflags.extend(MSVC_EXTRA_FLAGS)
        else:
            plan.platform_shim_dir = options.build_dir / "platform_shim"
            plan.add_include_dir(plan.platform_shim_dir)
            if not family.is_windows:
                plan.cflags.append("-fPIC")

    def _add_capabilities(self, plan: BuildPlan, platform: PlatformInfo) -> None:
        if platform.has_strlcpy:
            plan.define("ZMQ_HAVE_STRLCPY")
        if platform.has_ipc_headers:
            plan.define("ZMQ_HAVE_IPC")

        if platform.has_cxx11:
            plan.define("ZMQ_USE_CV_IMPL_STL11")
            if platform.family != PlatformFamily.MSVC:
                plan.cxxflags.append("-std=c++11")
        elif platform.family.is_windows:
            plan.define("ZMQ_USE_CV_IMPL_WIN32API")
        else:
            plan.define("ZMQ_USE_CV_IMPL_PTHREADS")

    def _add_optimization(self, plan: BuildPlan, options: BuildOptions) -> None:
        if plan.is_msvc:
            plan.cflags.extend(["/nologo", "/MD"])
            plan.cflags.extend(["/Od", "/Z7"] if options.debug else ["/O2"])
        else:
            plan.cflags.extend(["-g", "-O0"] if options.debug else ["-O2"])
        if not options.debug:
            plan.define("NDEBUG")

    def _add_libraries(self, plan: BuildPlan, options: BuildOptions, platform: PlatformInfo) -> None:
        kind = LinkKind.STATIC if options.link_static else LinkKind.DYNAMIC
        plan.libraries.append(Library(plan.primary_library, kind))

        if options.external_crypto_lib is not None:
            sodium = "libsodium" if platform.family == PlatformFamily.MSVC else "sodium"
            plan.libraries.append(Library(sodium, LinkKind.STATIC))

        # A static libzmq leaves its C++ runtime to the consumer.
        if options.link_static:
            family = platform.family
            if family == PlatformFamily.APPLE or family == PlatformFamily.BSD:
                plan.libraries.append(Library("c++", LinkKind.DYNAMIC))
            elif family != PlatformFamily.MSVC:
                plan.libraries.append(Library("stdc++", LinkKind.DYNAMIC))

        if platform.family.is_windows:
            plan.libraries.append(Library("iphlpapi", LinkKind.UNSPECIFIED))

    def _add_configure_args(self, plan: BuildPlan, options: BuildOptions) -> None:
        prefix = str(plan.install_dir)
        if plan.family == PlatformFamily.WINDOWS_GNU:
            prefix = sanitize_sh_path(prefix)

        args = [f"--prefix={prefix}"]
        if options.link_static:
            args.extend(["--enable-static", "--disable-shared"])
        else:
            args.extend(["--enable-shared", "--disable-static"])
        if options.debug:
            args.append("--enable-debug")
        args.append("--enable-drafts" if options.enable_draft_api else "--disable-drafts")
        args.append("--enable-curve" if options.enable_curve else "--disable-curve")
        args.append("--enable-perf" if options.enable_perf_tool else "--disable-perf")
        args.append(f"--with-poller={_POLLERS[plan.family]}")

        external = options.external_crypto_lib
        if external is not None:
            args.append("--with-libsodium")
            plan.configure_env["CPPFLAGS"] = f"-I{external.include_dir}"
            plan.configure_env["LDFLAGS"] = f"-L{external.lib_dir}"
        else:
            args.append("--without-libsodium")

        args.extend(options.configure_args)

        # Kept in this order for the vendored configure script.
        if options.is_cross_compile:
            args.append(f"--host={options.target_triple}")
            args.append(f"--target={options.host_triple}")

        plan.configure_args = args

    def _add_cmake_options(self, plan: BuildPlan, options: BuildOptions) -> None:
        on_off = {True: "ON", False: "OFF"}
        plan.cmake_options.update({
            "CMAKE_BUILD_TYPE": plan.config_label,
            "CMAKE_INSTALL_PREFIX": str(plan.install_dir),
            "CMAKE_INSTALL_LIBDIR": "lib",
            "BUILD_TESTS": "OFF",
            "WITH_DOCS": "OFF",
            "ENABLE_DRAFTS": on_off[options.enable_draft_api],
            "ENABLE_CURVE": on_off[options.enable_curve],
            "WITH_PERF_TOOL": on_off[options.enable_perf_tool],
            "WITH_LIBSODIUM": on_off[options.external_crypto_lib is not None],
            "POLLER": _POLLERS[plan.family],
        })

        external = options.external_crypto_lib
        if external is not None:
            plan.cmake_options["SODIUM_INCLUDE_DIRS"] = str(external.include_dir)
            plan.cmake_options["SODIUM_LIBRARY_DIRS"] = str(external.lib_dir)

        if plan.is_msvc:
            flags = " ".join(MSVC_EXTRA_FLAGS)
            plan.cmake_options["CMAKE_C_FLAGS"] = flags
            plan.cmake_options["CMAKE_CXX_FLAGS"] = flags
            plan.cmake_generator = "Visual Studio 17 2022"
            plan.cmake_platform = _msvc_cmake_platform(options.target_triple)


def _msvc_cmake_platform(target_triple: str) -> str:
    arch = target_triple.split("-")[0]
    if arch == "x86_64":
        return "x64"
    if arch.startswith("i") and arch.endswith("86"):
        return "Win32"
    if arch == "aarch64":
        return "ARM64"
    return "x64"


def build_plan(options: BuildOptions, platform: PlatformInfo) -> BuildPlan:
    """Derive the build plan for options and platform.

    Convenience wrapper around BuildPlanBuilder.build_plan().
    """
    return BuildPlanBuilder().build_plan(options, platform)
