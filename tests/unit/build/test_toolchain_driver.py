"""
Unit tests for ToolchainDriver.

Tests the command sequences of the autotools, CMake and direct compilation
modes, clean-build preparation and stage failures. External processes are
replaced by a runner that records commands and writes their outputs.
"""

from pathlib import Path

import pytest

from zeromq_src.build import sources
from zeromq_src.build.build_plan import build_plan
from zeromq_src.build.toolchain_driver import (
    BUILD_STAGE,
    CONFIGURE_STAGE,
    INSTALL_STAGE,
    ToolchainDriver,
)
from zeromq_src.config.options import BuildOptions, LibLocation, ToolchainMode
from zeromq_src.errors import ToolchainNotFoundError, ToolchainStageError
from zeromq_src.toolchain.platform_utils import PlatformClassifier
from zeromq_src.toolchain.toolchain_binaries import ToolchainBinaryFinder

LINUX = "x86_64-unknown-linux-gnu"
MSVC = "x86_64-pc-windows-msvc"


def make_driver(env, vendored_tree, runner, target=LINUX, host=None):
    platform = PlatformClassifier.platform_info(target)
    finder = ToolchainBinaryFinder(env, platform, host or target)
    return ToolchainDriver(env, finder, vendored_tree, runner=runner, show_progress=False)


def make_plan(out_dir, target=LINUX, host=None, **kwargs):
    kwargs.setdefault("link_static", True)
    options = BuildOptions(out_dir=out_dir, target_triple=target, host_triple=host or target, **kwargs)
    return build_plan(options, PlatformClassifier.platform_info(target))


class TestPrepare:
    """Clean-build preparation."""

    def test_stale_outputs_removed(self, tool_env, vendored_tree, out_dir, fake_runner):
        sentinel_build = out_dir / "build" / "stale.o"
        sentinel_install = out_dir / "install" / "lib" / "old.a"
        for sentinel in (sentinel_build, sentinel_install):
            sentinel.parent.mkdir(parents=True)
            sentinel.write_text("stale")

        plan = make_plan(out_dir)
        make_driver(tool_env, vendored_tree, fake_runner()).prepare(plan)

        assert not sentinel_build.exists()
        assert not sentinel_install.exists()
        assert (plan.source_root / "include" / "zmq.h").exists()
        assert plan.install_dir.is_dir()

    def test_probe_scratch_survives(self, tool_env, vendored_tree, out_dir, fake_runner):
        scratch = out_dir / "probe" / "keep.txt"
        scratch.parent.mkdir()
        scratch.write_text("x")

        make_driver(tool_env, vendored_tree, fake_runner()).prepare(make_plan(out_dir))

        assert scratch.exists()

    def test_missing_source_tree(self, tool_env, tmp_path, out_dir, fake_runner):
        driver = make_driver(tool_env, tmp_path / "no-vendor", fake_runner())

        with pytest.raises(FileNotFoundError):
            driver.prepare(make_plan(out_dir))


class TestAutotools:
    """Autotools mode."""

    def test_command_sequence(self, tool_env, tool_path, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.stages() == [CONFIGURE_STAGE, BUILD_STAGE, INSTALL_STAGE]
        configure, build, install = (record.command for record in runner.commands)
        assert configure[:2] == ["sh", str(plan.source_root / "configure")]
        assert configure[2:] == plan.configure_args
        assert build == [str(tool_path / "make"), "-j4"]
        assert install == [str(tool_path / "make"), "install"]
        assert all(record.cwd == str(plan.source_root) for record in runner.commands)

    def test_child_env_is_copied(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.commands[0].env["PATH"] == tool_env.path
        assert runner.commands[0].env is not runner.commands[1].env

    def test_libsodium_flags_in_configure_env(self, tool_env, vendored_tree, out_dir, fake_runner):
        sodium = LibLocation(lib_dir=Path("/opt/sodium/lib"), include_dir=Path("/opt/sodium/include"))
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS, external_crypto_lib=sodium)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        configure_env = runner.commands[0].env
        assert configure_env["CPPFLAGS"] == "-I/opt/sodium/include"
        assert configure_env["LDFLAGS"] == "-L/opt/sodium/lib"
        assert "CPPFLAGS" not in runner.commands[1].env

    def test_autogen_runs_when_configure_missing(self, tool_env, vendored_tree, out_dir, fake_runner):
        (vendored_tree / "configure").unlink()
        (vendored_tree / "autogen.sh").write_text("#!/bin/sh\n")
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.commands[0].command == ["sh", "autogen.sh"]
        assert runner.stages()[:2] == [CONFIGURE_STAGE, CONFIGURE_STAGE]

    def test_neither_configure_nor_autogen(self, tool_env, vendored_tree, out_dir, fake_runner):
        (vendored_tree / "configure").unlink()
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner()

        with pytest.raises(ToolchainNotFoundError):
            make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.commands == []

    def test_configure_path_override(self, tool_env, vendored_tree, tmp_path, out_dir, fake_runner):
        script = tmp_path / "my-configure"
        script.write_text("#!/bin/sh\n")
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS, configure_path=script)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.commands[0].command[:2] == ["sh", str(script)]

    def test_make_depend_when_declared(self, tool_env, vendored_tree, out_dir, fake_runner):
        (vendored_tree / "Makefile").write_text("all:\n\ndepend: foo\n\techo\n")
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert runner.commands[1].command[-1] == "depend"
        assert runner.stages() == [CONFIGURE_STAGE, BUILD_STAGE, BUILD_STAGE, INSTALL_STAGE]

    def test_configure_failure_stops_build(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner(failures={CONFIGURE_STAGE: 1})

        with pytest.raises(ToolchainStageError) as exc_info:
            make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert exc_info.value.stage == CONFIGURE_STAGE
        assert exc_info.value.returncode == 1
        assert runner.stages() == [CONFIGURE_STAGE]

    def test_missing_make(self, tmp_path, vendored_tree, out_dir, fake_runner):
        from zeromq_src.config.environment import Environment

        empty_bin = tmp_path / "empty-bin"
        empty_bin.mkdir()
        env = Environment.from_mapping({"PATH": str(empty_bin)})
        plan = make_plan(out_dir, mode=ToolchainMode.AUTOTOOLS)
        runner = fake_runner()

        with pytest.raises(ToolchainNotFoundError) as exc_info:
            make_driver(env, vendored_tree, runner).execute(plan, ToolchainMode.AUTOTOOLS)

        assert exc_info.value.command == ["make"]
        assert runner.stages() == [CONFIGURE_STAGE]


class TestCMake:
    """CMake mode."""

    def test_command_sequence(self, tool_env, tool_path, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.CMAKE, debug=True)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.CMAKE)

        assert runner.stages() == [CONFIGURE_STAGE, BUILD_STAGE]
        configure, build = (record.command for record in runner.commands)
        build_tree = str(out_dir / "build" / "cmake")
        assert configure[:5] == [str(tool_path / "cmake"), "-S", str(plan.source_root), "-B", build_tree]
        assert "-G" not in configure
        assert build == [
            str(tool_path / "cmake"), "--build", build_tree,
            "--config", "Debug", "--target", "install", "--parallel", "4",
        ]

    def test_defines_become_cache_variables(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.CMAKE, enable_draft_api=True)
        runner = fake_runner(install_dir=plan.install_dir)

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.CMAKE)

        configure = runner.commands[0].command
        assert "-DZMQ_BUILD_DRAFT_API=1" in configure
        assert "-DZMQ_USE_BUILTIN_SHA1=1" in configure
        assert "-DBUILD_STATIC=ON" in configure
        assert "-DENABLE_DRAFTS=ON" in configure
        assert "-DCMAKE_BUILD_TYPE=Release" in configure
        assert f"-DCMAKE_INSTALL_PREFIX={plan.install_dir}" in configure

    def test_bare_define_is_on(self):
        from zeromq_src.build.build_plan import BuildPlan
        from zeromq_src.toolchain.platform_utils import PlatformFamily

        plan = BuildPlan(PlatformFamily.LINUX, "Release", Path("/s"), Path("/i"))
        plan.define("ZMQ_STATIC", None)
        plan.cmake_options["POLLER"] = "epoll"

        assert ToolchainDriver.cache_variables(plan) == [("ZMQ_STATIC", "ON"), ("POLLER", "epoll")]

    def test_msvc_generator(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, target=MSVC, mode=ToolchainMode.CMAKE)
        runner = fake_runner(install_dir=plan.install_dir, installed_libs=["libzmq-v143-mt-s-4_3_5.lib"])

        make_driver(tool_env, vendored_tree, runner, target=MSVC).execute(plan, ToolchainMode.CMAKE)

        configure = runner.commands[0].command
        generator = configure.index("-G")
        assert configure[generator + 1] == "Visual Studio 17 2022"
        assert configure[configure.index("-A") + 1] == "x64"
        assert "-DCMAKE_CXX_FLAGS=/GL- /EHsc" in configure

    def test_build_failure(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, mode=ToolchainMode.CMAKE)
        runner = fake_runner(failures={BUILD_STAGE: 2})

        with pytest.raises(ToolchainStageError) as exc_info:
            make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.CMAKE)

        assert exc_info.value.stage == BUILD_STAGE
        assert "--build" in exc_info.value.command


class TestDirectCompile:
    """Direct compilation mode."""

    def test_compiles_every_source(self, tool_env, tool_path, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir)
        runner = fake_runner()

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.DIRECT_COMPILE)

        compile_commands = runner.commands[:-1]
        assert len(compile_commands) == len(plan.c_sources) + len(plan.cxx_sources)
        assert compile_commands[0].command[0] == str(tool_path / "cc")
        assert compile_commands[-1].command[0] == str(tool_path / "c++")
        assert all(record.stage == BUILD_STAGE for record in runner.commands)

        archive_cmd = runner.commands[-1].command
        assert archive_cmd[:3] == [str(tool_path / "ar"), "crs", str(plan.install_dir / "lib" / "libzmq.a")]
        assert len(archive_cmd) == 3 + len(compile_commands)

    def test_defines_on_command_line(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir)
        runner = fake_runner()

        make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.DIRECT_COMPILE)

        cxx_cmd = runner.commands[-2].command
        assert "-DZMQ_IOTHREAD_POLLER_USE_EPOLL=1" in cxx_cmd
        assert "-DZMQ_USE_TWEETNACL=1" in cxx_cmd
        assert "-fPIC" in cxx_cmd
        rsp = (out_dir / "build" / "includes.rsp").read_text().splitlines()
        assert rsp[0] == f"-I{plan.source_root / 'include'}"

    def test_platform_shim_and_headers(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir)

        make_driver(tool_env, vendored_tree, fake_runner()).execute(plan, ToolchainMode.DIRECT_COMPILE)

        assert (plan.platform_shim_dir / "platform.hpp").read_text() == ""
        for rel in sources.PUBLIC_HEADERS:
            assert (plan.install_dir / "include" / Path(rel).name).exists()

    def test_user_cflags_forwarded(self, tool_path, vendored_tree, out_dir, fake_runner):
        from zeromq_src.config.environment import Environment

        env = Environment.from_mapping({"PATH": str(tool_path), "CFLAGS": "-march=native", "CXXFLAGS": "-Wall"})
        plan = make_plan(out_dir)
        runner = fake_runner()

        make_driver(env, vendored_tree, runner).execute(plan, ToolchainMode.DIRECT_COMPILE)

        c_cmd = runner.commands[0].command
        cxx_cmd = runner.commands[-2].command
        assert "-march=native" in c_cmd and "-Wall" not in c_cmd
        assert "-march=native" in cxx_cmd and "-Wall" in cxx_cmd

    def test_msvc_archive_name(self, tool_env, tool_path, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir, target=MSVC)
        runner = fake_runner()

        make_driver(tool_env, vendored_tree, runner, target=MSVC).execute(plan, ToolchainMode.DIRECT_COMPILE)

        archive_cmd = runner.commands[-1].command
        assert archive_cmd[0] == str(tool_path / "lib.exe")
        assert archive_cmd[2] == f"/OUT:{plan.install_dir / 'lib' / 'libzmq.lib'}"
        assert runner.commands[0].command[-1].startswith("/Fo")
        assert plan.platform_shim_dir is None

    def test_cross_compiler_names(self, tmp_path, vendored_tree, out_dir, fake_runner):
        from zeromq_src.config.environment import Environment

        target = "aarch64-linux-gnu"
        bin_dir = tmp_path / "cross-bin"
        bin_dir.mkdir()
        for tool in ("gcc", "g++", "ar"):
            path = bin_dir / f"{target}-{tool}"
            path.write_text("#!/bin/sh\n")
            path.chmod(0o755)
        env = Environment.from_mapping({"PATH": str(bin_dir)})
        plan = make_plan(out_dir, target=target, host=LINUX)
        runner = fake_runner()

        make_driver(env, vendored_tree, runner, target=target, host=LINUX).execute(plan, ToolchainMode.DIRECT_COMPILE)

        assert runner.commands[0].command[0] == str(bin_dir / f"{target}-gcc")
        assert runner.commands[-1].command[0] == str(bin_dir / f"{target}-ar")

    def test_compile_failure_names_stage(self, tool_env, vendored_tree, out_dir, fake_runner):
        plan = make_plan(out_dir)
        runner = fake_runner(failures={BUILD_STAGE: 1})

        with pytest.raises(ToolchainStageError) as exc_info:
            make_driver(tool_env, vendored_tree, runner).execute(plan, ToolchainMode.DIRECT_COMPILE)

        assert str(exc_info.value).startswith("Error building:")
        assert len(runner.commands) == 1

    def test_missing_source_file(self, tool_env, vendored_tree, out_dir, fake_runner):
        (vendored_tree / "src" / "ctx.cpp").unlink()
        plan = make_plan(out_dir)

        with pytest.raises(ToolchainStageError) as exc_info:
            make_driver(tool_env, vendored_tree, fake_runner()).execute(plan, ToolchainMode.DIRECT_COMPILE)

        assert "ctx.cpp" in exc_info.value.output
