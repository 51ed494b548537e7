"""Toolchain Driver.

This module executes a BuildPlan against the vendored libzmq tree.

Modes:
    - Autotools: [autogen.sh] -> configure -> [make depend] -> make -> make install
      (nmake and install_sw on MSVC)
    - CMake: one configure/generate run, one build run that also installs
    - Direct compile: every listed source compiled with the plan's defines and
      include paths, archived into a single static library

Every invocation starts from a clean tree: stale <out_dir>/build and
<out_dir>/install directories are removed before the first command runs,
then the vendored source is copied to <out_dir>/build/src.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from tqdm import tqdm

from ..config.environment import Environment
from ..config.options import ToolchainMode
from ..errors import ArtifactResolutionError, ToolchainNotFoundError
from ..toolchain.platform_utils import PlatformFamily
from ..toolchain.toolchain_binaries import ToolchainBinaryFinder
from . import sources
from .archive_creator import ArchiveCreator
from .build_plan import BuildPlan
from .build_utils import copy_tree, safe_rmtree, sanitize_sh_path
from .command_runner import CommandRunner, SubprocessCommandRunner
from .compilation_executor import CompilationExecutor
from .flag_builder import FlagBuilder

CONFIGURE_STAGE = "configuring build"
BUILD_STAGE = "building"
INSTALL_STAGE = "installing"


class ToolchainDriver:
    """Runs the external toolchain for one build plan."""

    def __init__(
        self,
        env: Environment,
        finder: ToolchainBinaryFinder,
        source_dir: Path,
        runner: Optional[CommandRunner] = None,
        show_progress: bool = True
    ):
        """Initialize the driver.

        Args:
            env: Injected environment, copied into every child process
            finder: Binary finder for the target toolchain
            source_dir: Pristine vendored libzmq tree
            runner: Command runner (defaults to a subprocess runner)
            show_progress: Whether to print progress
        """
        self.env = env
        self.finder = finder
        self.source_dir = source_dir
        self.runner = runner or SubprocessCommandRunner()
        self.show_progress = show_progress

    def execute(self, plan: BuildPlan, mode: ToolchainMode) -> None:
        """Build and install libzmq according to the plan.

        Args:
            plan: Derived build plan
            mode: Toolchain mode to use

        Raises:
            ToolchainNotFoundError: If a required executable is missing
            ToolchainStageError: If any external process fails
        """
        self.prepare(plan)
        logging.info(f"Building libzmq ({plan.config_label}, {mode.value}) in {plan.source_root}")

        if mode == ToolchainMode.AUTOTOOLS:
            self._run_autotools(plan)
        elif mode == ToolchainMode.CMAKE:
            self._run_cmake(plan)
        else:
            self._run_direct_compile(plan)

    def prepare(self, plan: BuildPlan) -> None:
        """Remove stale output trees and copy the vendored source.

        Raises:
            FileNotFoundError: If the vendored source tree is missing
        """
        build_dir = plan.source_root.parent
        for stale in (build_dir, plan.install_dir):
            if stale.exists():
                logging.info(f"Removing stale output directory {stale}")
                safe_rmtree(stale)

        if self.show_progress:
            print(f"Copying libzmq sources to {plan.source_root}...")
        copy_tree(self.source_dir, plan.source_root)
        plan.install_dir.mkdir(parents=True, exist_ok=True)

    # Autotools

    def _run_autotools(self, plan: BuildPlan) -> None:
        src = plan.source_root
        msvc = plan.family == PlatformFamily.MSVC

        configure = plan.configure_path or src / "configure"
        if plan.configure_path is None and not configure.exists():
            autogen = src / "autogen.sh"
            if not autogen.exists():
                raise ToolchainNotFoundError(
                    [str(configure)],
                    f"neither configure nor autogen.sh exists in {src}"
                )
            self.runner.run(["sh", "autogen.sh"], stage=CONFIGURE_STAGE, cwd=src, env=self._child_env())

        configure_cmd = self._configure_command(plan, configure)
        self.runner.run(
            configure_cmd,
            stage=CONFIGURE_STAGE,
            cwd=src,
            env=self._child_env(self._configure_env(plan)),
        )

        make = self.finder.make()
        parallel = [] if msvc else [f"-j{self.env.num_jobs}"]

        if not msvc and _has_depend_target(src / "Makefile"):
            self.runner.run(make + ["depend"], stage=BUILD_STAGE, cwd=src, env=self._child_env())

        self.runner.run(make + parallel, stage=BUILD_STAGE, cwd=src, env=self._child_env())

        install_target = "install_sw" if msvc else "install"
        self.runner.run(make + [install_target], stage=INSTALL_STAGE, cwd=src, env=self._child_env())

    def _configure_command(self, plan: BuildPlan, configure: Path) -> List[str]:
        if plan.family == PlatformFamily.MSVC:
            return [str(configure)] + plan.configure_args
        script = str(configure)
        if plan.family == PlatformFamily.WINDOWS_GNU:
            script = sanitize_sh_path(script.replace("\\", "/"))
        return ["sh", script] + plan.configure_args

    def _configure_env(self, plan: BuildPlan) -> Dict[str, str]:
        overrides = {}
        for key, value in plan.configure_env.items():
            existing = self.env.get(key)
            overrides[key] = f"{existing} {value}" if existing else value
        return overrides

    # CMake

    def _run_cmake(self, plan: BuildPlan) -> None:
        cmake = self.finder.cmake()
        build_tree = plan.source_root.parent / "cmake"

        configure_cmd = cmake + ["-S", str(plan.source_root), "-B", str(build_tree)]
        if plan.cmake_generator:
            configure_cmd.extend(["-G", plan.cmake_generator])
        if plan.cmake_platform:
            configure_cmd.extend(["-A", plan.cmake_platform])
        for name, value in self.cache_variables(plan):
            configure_cmd.append(f"-D{name}={value}")

        self.runner.run(configure_cmd, stage=CONFIGURE_STAGE, cwd=plan.source_root.parent, env=self._child_env())

        build_cmd = cmake + [
            "--build", str(build_tree),
            "--config", plan.config_label,
            "--target", "install",
            "--parallel", str(self.env.num_jobs),
        ]
        self.runner.run(build_cmd, stage=BUILD_STAGE, cwd=plan.source_root.parent, env=self._child_env())

    @staticmethod
    def cache_variables(plan: BuildPlan) -> List[Tuple[str, str]]:
        """CMake cache variables: every plan define, then the CMake options.

        Bare defines (no value) become ON.
        """
        variables = [
            (name, "ON" if value is None else value)
            for name, value in sorted(plan.defines.items())
        ]
        variables.extend(plan.cmake_options.items())
        return variables

    # Direct compilation

    def _run_direct_compile(self, plan: BuildPlan) -> None:
        msvc = plan.family == PlatformFamily.MSVC
        build_dir = plan.source_root.parent
        obj_dir = build_dir / "obj"
        child_env = self._child_env()

        if plan.platform_shim_dir is not None:
            plan.platform_shim_dir.mkdir(parents=True, exist_ok=True)
            (plan.platform_shim_dir / "platform.hpp").write_text("")

        flags = FlagBuilder(
            plan,
            user_cflags=FlagBuilder.parse_flag_string(self.env.get("CFLAGS")),
            user_cxxflags=FlagBuilder.parse_flag_string(self.env.get("CXXFLAGS")),
        )
        include_flags = flags.include_flags()

        units: List[Tuple[str, List[str], List[str]]] = []
        if plan.c_sources:
            c_compiler = self.finder.c_compiler()
            c_flags = flags.c_flags()
            units.extend((rel, c_compiler, c_flags) for rel in plan.c_sources)
        if plan.cxx_sources:
            cxx_compiler = self.finder.cxx_compiler()
            cxx_flags = flags.cxx_flags()
            units.extend((rel, cxx_compiler, cxx_flags) for rel in plan.cxx_sources)
        archiver = self.finder.archiver()

        executor = CompilationExecutor(build_dir, self.runner, msvc=msvc, show_progress=False, env=child_env)
        object_suffix = ".obj" if msvc else ".o"
        object_files = []
        for rel, compiler, compile_flags in tqdm(
            units,
            desc="Compiling libzmq",
            unit="file",
            disable=not self.show_progress,
        ):
            source = plan.source_root / rel
            obj = obj_dir / (rel.replace("/", "_").rsplit(".", 1)[0] + object_suffix)
            object_files.append(
                executor.compile_source(compiler, source, obj, compile_flags, include_flags)
            )

        lib_dir = plan.install_dir / "lib"
        archive_name = f"lib{plan.primary_library}.lib" if msvc else f"lib{plan.primary_library}.a"
        creator = ArchiveCreator(self.runner, msvc=msvc, show_progress=self.show_progress, env=child_env)
        creator.create_archive(archiver, lib_dir / archive_name, object_files)

        self._install_headers(plan)

    def _install_headers(self, plan: BuildPlan) -> None:
        include_dir = plan.install_dir / "include"
        include_dir.mkdir(parents=True, exist_ok=True)
        for rel in sources.PUBLIC_HEADERS:
            header = plan.source_root / rel
            if not header.is_file():
                raise ArtifactResolutionError(f"Public header not found: {header}")
            shutil.copy2(header, include_dir / header.name)
        logging.info(f"Installed public headers to {include_dir}")

    def _child_env(self, overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        return self.env.child_environment(overrides)


def _has_depend_target(makefile: Path) -> bool:
    """True when a generated Makefile declares a 'depend' target."""
    try:
        text = makefile.read_text(errors="replace")
    except OSError:
        return False
    return re.search(r"^depend\s*:", text, re.MULTILINE) is not None
