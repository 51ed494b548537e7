"""
Shared fixtures for build pipeline tests.

Provides a miniature vendored libzmq tree, a PATH holding placeholder
toolchain executables, and a command runner that records commands and
writes the files a real toolchain would produce.
"""

import stat
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

import pytest

from zeromq_src.build import sources
from zeromq_src.build.command_runner import CommandResult, RecordingCommandRunner
from zeromq_src.config.environment import Environment

TOOL_NAMES = ["cc", "c++", "ar", "make", "gmake", "cmake", "cl.exe", "lib.exe", "nmake.exe"]


class FakeToolchainRunner(RecordingCommandRunner):
    """Records commands and creates the outputs they would have produced.

    Object files and archives named on a compiler/archiver command line are
    written. An install step (make install or cmake --build --target install)
    populates <install_dir>/lib with the given library files and
    <install_dir>/include with zmq.h.
    """

    def __init__(
        self,
        install_dir: Optional[Path] = None,
        installed_libs: Sequence[str] = ("libzmq.a",),
        failures: Optional[Mapping[str, int]] = None,
    ):
        super().__init__(failures=failures)
        self.install_dir = install_dir
        self.installed_libs = list(installed_libs)

    def run(self, command, stage, cwd=None, env=None, timeout=None) -> CommandResult:
        result = super().run(command, stage, cwd=cwd, env=env, timeout=timeout)
        cmd = result.command

        for index, part in enumerate(cmd):
            if part in ("-o", "crs") and index + 1 < len(cmd):
                _touch(Path(cmd[index + 1]))
            elif part.startswith("/Fo") or part.startswith("/OUT:"):
                _touch(Path(part.split(":", 1)[1] if part.startswith("/OUT:") else part[3:]))

        if self.install_dir is not None and _is_install(cmd):
            for name in self.installed_libs:
                _touch(self.install_dir / "lib" / name)
            _touch(self.install_dir / "include" / "zmq.h")
        return result


def _is_install(cmd: List[str]) -> bool:
    if "--build" in cmd and "install" in cmd:
        return True
    return cmd[-1] in ("install", "install_sw")


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"fake")


@pytest.fixture
def vendored_tree(tmp_path):
    """Create a miniature vendored libzmq tree with every listed source."""
    root = tmp_path / "vendor"
    for rel in sources.cxx_sources() + sources.c_sources(bundled_crypto=True) + sources.PUBLIC_HEADERS:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"/* {rel} */\n")
    (root / sources.MSVC_PLATFORM_DIR).mkdir(parents=True)
    (root / sources.MSVC_PLATFORM_DIR / "platform.hpp").write_text("/* msvc */\n")
    configure = root / "configure"
    configure.write_text("#!/bin/sh\nexit 0\n")
    return root


@pytest.fixture
def tool_path(tmp_path):
    """Directory holding executable placeholders for every toolchain binary."""
    bin_dir = tmp_path / "toolbin"
    bin_dir.mkdir()
    for name in TOOL_NAMES:
        tool = bin_dir / name
        tool.write_text("#!/bin/sh\nexit 0\n")
        tool.chmod(tool.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return bin_dir


@pytest.fixture
def tool_env(tool_path):
    """Environment whose PATH only contains the placeholder toolchain."""
    return Environment.from_mapping({"PATH": str(tool_path), "NUM_JOBS": "4"})


@pytest.fixture
def out_dir(tmp_path):
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def fake_runner():
    """Factory for FakeToolchainRunner instances."""
    return FakeToolchainRunner
