"""
Unit tests for build options and the chained Build builder.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from zeromq_src.config.environment import Environment
from zeromq_src.config.options import Build, BuildOptions, LibLocation, ToolchainMode
from zeromq_src.errors import ConfigurationError

LINUX = "x86_64-unknown-linux-gnu"


class TestToolchainMode:
    """Test suite for ToolchainMode."""

    @pytest.mark.parametrize("name,mode", [
        ("autotools", ToolchainMode.AUTOTOOLS),
        ("CMake", ToolchainMode.CMAKE),
        ("direct", ToolchainMode.DIRECT_COMPILE),
    ])
    def test_from_name(self, name, mode):
        assert ToolchainMode.from_name(name) == mode

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ToolchainMode.from_name("meson")
        assert "autotools, cmake, direct" in str(exc_info.value)


class TestBuildOptions:
    """Test suite for BuildOptions."""

    def test_derived_directories(self):
        options = BuildOptions(out_dir=Path("/out"), target_triple=LINUX, host_triple=LINUX)
        assert options.build_dir == Path("/out/build")
        assert options.install_dir == Path("/out/install")
        assert options.source_copy_dir == Path("/out/build/src")

    def test_cross_compile(self):
        native = BuildOptions(out_dir=Path("/out"), target_triple=LINUX, host_triple=LINUX)
        cross = BuildOptions(out_dir=Path("/out"), target_triple="aarch64-linux-gnu", host_triple=LINUX)
        assert not native.is_cross_compile
        assert cross.is_cross_compile

    def test_validate_missing_target(self):
        options = BuildOptions(out_dir=Path("/out"), target_triple="", host_triple=LINUX)
        with pytest.raises(ConfigurationError):
            options.validate()

    def test_validate_missing_host(self):
        options = BuildOptions(out_dir=Path("/out"), target_triple=LINUX, host_triple="")
        with pytest.raises(ConfigurationError):
            options.validate()

    def test_validate_missing_out_dir(self):
        options = BuildOptions(out_dir=None, target_triple=LINUX, host_triple=LINUX)
        with pytest.raises(ConfigurationError, match="Output directory"):
            options.validate()

    def test_validate_accepts_current_directory(self):
        BuildOptions(out_dir=Path("."), target_triple=LINUX, host_triple=LINUX).validate()

    def test_frozen(self):
        options = BuildOptions(out_dir=Path("/out"), target_triple=LINUX, host_triple=LINUX)
        with pytest.raises(Exception):
            options.debug = True


class TestBuild:
    """Test suite for the chained Build builder."""

    def test_chained_setters(self):
        sodium = LibLocation(Path("/s/lib"), Path("/s/include"))
        options = (
            Build()
            .build_debug(True)
            .link_static(True)
            .enable_draft(True)
            .enable_curve(True)
            .perf_tool(True)
            .with_libsodium(sodium)
            .configure_path(Path("/x/configure"))
            .args(["--foo", "--bar"])
            .out_dir(Path("/out"))
            .target(LINUX)
            .host(LINUX)
            .mode(ToolchainMode.CMAKE)
            .options()
        )
        assert options.debug
        assert options.link_static
        assert options.enable_draft_api
        assert options.enable_curve
        assert options.enable_perf_tool
        assert options.external_crypto_lib == sodium
        assert options.configure_path == Path("/x/configure")
        assert options.configure_args == ("--foo", "--bar")
        assert options.mode == ToolchainMode.CMAKE

    def test_defaults(self):
        options = Build().out_dir(Path("/out")).target(LINUX).host(LINUX).options()
        assert options.link_static
        assert not options.debug
        assert not options.enable_draft_api
        assert options.external_crypto_lib is None
        assert options.mode == ToolchainMode.DIRECT_COMPILE

    def test_environment_fallbacks(self):
        env = Environment.from_mapping({
            "TARGET": LINUX,
            "HOST": LINUX,
            "OUT_DIR": "/env/out",
            "PROFILE": "debug",
        })
        options = Build().options(env)
        assert options.target_triple == LINUX
        assert options.host_triple == LINUX
        assert options.out_dir == Path("/env/out")
        assert options.debug

    def test_explicit_values_win_over_environment(self):
        env = Environment.from_mapping({"TARGET": "x", "HOST": "y", "OUT_DIR": "/env", "PROFILE": "debug"})
        options = Build().target(LINUX).host(LINUX).out_dir(Path("/mine")).build_debug(False).options(env)
        assert options.target_triple == LINUX
        assert options.out_dir == Path("/mine")
        assert not options.debug

    def test_missing_out_dir(self):
        with pytest.raises(ConfigurationError):
            Build().target(LINUX).host(LINUX).options(Environment())

    def test_missing_target(self):
        with pytest.raises(ConfigurationError):
            Build().host(LINUX).out_dir(Path("/out")).options(Environment())

    def test_build_runs_orchestrator(self):
        env = Environment.from_mapping({"TARGET": LINUX, "HOST": LINUX, "OUT_DIR": "/out"})
        with patch("zeromq_src.build.orchestrator.BuildOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.build.return_value = "artifacts"

            result = Build().build(env, show_progress=False)

        assert result == "artifacts"
        orchestrator_cls.assert_called_once_with(env=env, show_progress=False)
        options = orchestrator_cls.return_value.build.call_args[0][0]
        assert options.out_dir == Path("/out")
