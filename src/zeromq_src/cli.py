"""
Command-line interface for zeromq-src.

This module provides the `zeromq-src` CLI tool that builds the vendored
libzmq tree and reports the link metadata a consumer build needs.

stdout carries only machine-readable output (metadata lines or JSON);
banners, progress and errors go to stderr.
"""

import argparse
import contextlib
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from . import __version__
from .build.orchestrator import BuildOrchestrator
from .cli_utils import ErrorFormatter, setup_logging
from .config.environment import Environment
from .config.options import Build, BuildOptions, LibLocation, ToolchainMode
from .errors import ConfigurationError, ZeromqSrcError
from .metadata import MetadataReporter
from .toolchain.platform_utils import PlatformClassifier


@dataclass
class BuildArgs:
    """Arguments shared by the build, plan and probe commands."""

    out_dir: Optional[Path] = None
    target: Optional[str] = None
    host: Optional[str] = None
    debug: Optional[bool] = None
    link_static: Optional[bool] = None
    draft: bool = False
    curve: bool = False
    perf_tool: bool = False
    libsodium_lib_dir: Optional[Path] = None
    libsodium_include_dir: Optional[Path] = None
    configure_path: Optional[Path] = None
    configure_args: List[str] = field(default_factory=list)
    mode: str = ToolchainMode.DIRECT_COMPILE.value
    source_dir: Optional[Path] = None
    prefix: str = ""
    probe: bool = True
    verbose: bool = False


def build_options(args: BuildArgs, env: Environment) -> BuildOptions:
    """Translate CLI arguments into BuildOptions.

    Unset values fall back to the environment (TARGET, HOST, OUT_DIR, PROFILE).

    Raises:
        ConfigurationError: If the arguments are incomplete or inconsistent
    """
    builder = (
        Build()
        .enable_draft(args.draft)
        .enable_curve(args.curve)
        .perf_tool(args.perf_tool)
        .args(args.configure_args)
        .mode(ToolchainMode.from_name(args.mode))
    )
    if args.out_dir is not None:
        builder.out_dir(args.out_dir)
    if args.target:
        builder.target(args.target)
    if args.host:
        builder.host(args.host)
    if args.debug is not None:
        builder.build_debug(args.debug)
    if args.link_static is not None:
        builder.link_static(args.link_static)
    if args.configure_path is not None:
        builder.configure_path(args.configure_path)

    if (args.libsodium_lib_dir is None) != (args.libsodium_include_dir is None):
        raise ConfigurationError("--libsodium-lib-dir and --libsodium-include-dir must be given together")
    if args.libsodium_lib_dir is not None and args.libsodium_include_dir is not None:
        builder.with_libsodium(LibLocation(args.libsodium_lib_dir, args.libsodium_include_dir))

    return builder.options(env)


def _orchestrator(args: BuildArgs, env: Environment) -> BuildOrchestrator:
    return BuildOrchestrator(
        env=env,
        source_dir=args.source_dir,
        show_progress=True,
        verbose=args.verbose,
        probe_capabilities=args.probe,
    )


def build_command(args: BuildArgs) -> None:
    """Build libzmq and print the link metadata.

    Examples:
        zeromq-src build --out-dir out                  # Native static release build
        zeromq-src build --out-dir out --debug --draft  # Debug build with draft API
        zeromq-src build --mode cmake --dynamic         # Shared library through CMake
        zeromq-src build --prefix cargo:                # Prefix every metadata line
    """
    try:
        env = Environment.from_os_environ()
        options = build_options(args, env)
        orchestrator = _orchestrator(args, env)

        # Keep stdout for the metadata protocol.
        with contextlib.redirect_stdout(sys.stderr):
            artifacts = orchestrator.build(options)
            ErrorFormatter.print_success("Build successful!")

        MetadataReporter(prefix=args.prefix).report(artifacts)
        sys.exit(0)

    except ConfigurationError as e:
        ErrorFormatter.handle_configuration_error(e)
    except ZeromqSrcError as e:
        ErrorFormatter.handle_build_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def plan_command(args: BuildArgs) -> None:
    """Print the derived build plan as JSON without building.

    Examples:
        zeromq-src plan --out-dir out --target x86_64-pc-windows-msvc --host x86_64-pc-windows-msvc
    """
    try:
        env = Environment.from_os_environ()
        options = build_options(args, env)
        orchestrator = _orchestrator(args, env)

        with contextlib.redirect_stdout(sys.stderr):
            plan, _ = orchestrator.plan(options)

        print(json.dumps(plan.to_dict(), indent=2))
        sys.exit(0)

    except ConfigurationError as e:
        ErrorFormatter.handle_configuration_error(e)
    except ZeromqSrcError as e:
        ErrorFormatter.handle_build_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def probe_command(args: BuildArgs) -> None:
    """Run the capability probes for the target and print the answers."""
    try:
        env = Environment.from_os_environ()
        options = build_options(args, env)
        platform = PlatformClassifier.platform_info(options.target_triple)
        options.out_dir.mkdir(parents=True, exist_ok=True)

        with contextlib.redirect_stdout(sys.stderr):
            platform = _orchestrator(args, env).detect_capabilities(options, platform)

        print(f"family={platform.family.value}")
        print(f"strlcpy={'yes' if platform.has_strlcpy else 'no'}")
        print(f"cxx11={'yes' if platform.has_cxx11 else 'no'}")
        print(f"ipc_headers={'yes' if platform.has_ipc_headers else 'no'}")
        sys.exit(0)

    except ConfigurationError as e:
        ErrorFormatter.handle_configuration_error(e)
    except ZeromqSrcError as e:
        ErrorFormatter.handle_build_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_build_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        default=None,
        help="Output directory (default: $OUT_DIR)",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target triple (default: $TARGET)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host triple (default: $HOST)",
    )

    profile = parser.add_mutually_exclusive_group()
    profile.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        default=None,
        help="Debug build (default: from $PROFILE)",
    )
    profile.add_argument(
        "--release",
        dest="debug",
        action="store_false",
        help="Release build",
    )

    linkage = parser.add_mutually_exclusive_group()
    linkage.add_argument(
        "--static",
        dest="link_static",
        action="store_true",
        default=None,
        help="Build a static library (default)",
    )
    linkage.add_argument(
        "--dynamic",
        dest="link_static",
        action="store_false",
        help="Build a shared library (cmake and autotools modes, non-MSVC targets)",
    )

    parser.add_argument("--draft", action="store_true", help="Enable the draft API")
    parser.add_argument("--curve", action="store_true", help="Enable CURVE security")
    parser.add_argument("--perf-tool", action="store_true", help="Build the perf tools")
    parser.add_argument(
        "--libsodium-lib-dir",
        type=Path,
        default=None,
        help="Link against an external libsodium from this directory",
    )
    parser.add_argument(
        "--libsodium-include-dir",
        type=Path,
        default=None,
        help="Include directory of the external libsodium",
    )
    parser.add_argument(
        "--configure",
        dest="configure_path",
        type=Path,
        default=None,
        help="Path to an alternative configure script (autotools mode)",
    )
    parser.add_argument(
        "--configure-arg",
        dest="configure_args",
        action="append",
        default=[],
        help="Extra argument for configure (repeatable)",
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=[mode.value for mode in ToolchainMode],
        default=ToolchainMode.DIRECT_COMPILE.value,
        help="Toolchain mode (default: direct)",
    )
    parser.add_argument(
        "--source-dir",
        type=Path,
        default=None,
        help="libzmq source tree (default: bundled copy)",
    )
    parser.add_argument(
        "--no-probe",
        dest="probe",
        action="store_false",
        help="Skip the capability probes and assume conservative answers",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """zeromq-src - Build the vendored libzmq and report link metadata."""
    parser = argparse.ArgumentParser(
        prog="zeromq-src",
        description="zeromq-src - Build libzmq from source for native consumers",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"zeromq-src {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build libzmq and print link metadata",
    )
    _add_build_arguments(build_parser)
    build_parser.add_argument(
        "--prefix",
        default="",
        help="String prepended to every metadata line (e.g. 'cargo:')",
    )

    # Plan command
    plan_parser = subparsers.add_parser(
        "plan",
        help="Print the derived build plan as JSON",
    )
    _add_build_arguments(plan_parser)

    # Probe command
    probe_parser = subparsers.add_parser(
        "probe",
        help="Run the toolchain capability probes",
    )
    _add_build_arguments(probe_parser)

    # Parse arguments
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(parsed_args.verbose)

    build_args = BuildArgs(
        out_dir=parsed_args.out_dir,
        target=parsed_args.target,
        host=parsed_args.host,
        debug=parsed_args.debug,
        link_static=parsed_args.link_static,
        draft=parsed_args.draft,
        curve=parsed_args.curve,
        perf_tool=parsed_args.perf_tool,
        libsodium_lib_dir=parsed_args.libsodium_lib_dir,
        libsodium_include_dir=parsed_args.libsodium_include_dir,
        configure_path=parsed_args.configure_path,
        configure_args=parsed_args.configure_args,
        mode=parsed_args.mode,
        source_dir=parsed_args.source_dir,
        prefix=getattr(parsed_args, "prefix", ""),
        probe=parsed_args.probe,
        verbose=parsed_args.verbose,
    )

    # Execute command
    if parsed_args.command == "build":
        build_command(build_args)
    elif parsed_args.command == "plan":
        plan_command(build_args)
    elif parsed_args.command == "probe":
        probe_command(build_args)


if __name__ == "__main__":
    main()
