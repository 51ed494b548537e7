"""Toolchain Binary Finder Utilities.

This module locates the compiler, archiver and build tools used for a target.

Binary Naming Conventions:
    - MSVC: cl.exe (C and C++), lib.exe, nmake.exe
    - Native GNU/Clang: cc, c++, ar, make (gmake on the BSDs)
    - Cross GNU: {target}-gcc, {target}-g++, {target}-ar

Overrides:
    CC, CXX, AR, MAKE and CMAKE (and their CC_{target} forms) replace the
    defaults. An override may carry a wrapper, e.g. CC="ccache gcc".

nmake.exe is usually not on PATH; it is looked up in the Visual Studio
installation reported by vswhere.exe.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..config.environment import Environment
from ..errors import ToolchainNotFoundError
from .platform_utils import PlatformFamily, PlatformInfo

_MSVC_ARCH = {
    "x86_64": "x64",
    "i686": "x86",
    "i586": "x86",
    "aarch64": "arm64",
    "thumbv7a": "arm",
}


class ToolchainBinaryFinder:
    """Finds toolchain executables for one target."""

    def __init__(self, env: Environment, platform: PlatformInfo, host_triple: str):
        """Initialize the binary finder.

        Args:
            env: Injected environment (overrides and PATH)
            platform: Classified target platform
            host_triple: Triple of the machine running the build
        """
        self.env = env
        self.platform = platform
        self.host_triple = host_triple
        self._cache: Dict[str, List[str]] = {}

    @property
    def target_triple(self) -> str:
        return self.platform.target_triple

    @property
    def is_cross(self) -> bool:
        return self.host_triple != self.target_triple

    def _default_name(self, tool: str) -> str:
        family = self.platform.family
        if family == PlatformFamily.MSVC:
            return {"CC": "cl.exe", "CXX": "cl.exe", "AR": "lib.exe"}[tool]
        if self.is_cross:
            suffix = {"CC": "gcc", "CXX": "g++", "AR": "ar"}[tool]
            return f"{self.target_triple}-{suffix}"
        return {"CC": "cc", "CXX": "c++", "AR": "ar"}[tool]

    def command_for(self, tool: str) -> List[str]:
        """Return the resolved command prefix for CC, CXX or AR.

        Args:
            tool: One of "CC", "CXX", "AR"

        Returns:
            Command list whose first element is an absolute executable path

        Raises:
            ToolchainNotFoundError: If the executable cannot be found
        """
        if tool in self._cache:
            return list(self._cache[tool])

        override = self.env.tool_override(tool, self.target_triple)
        command = shlex.split(override) if override else [self._default_name(tool)]
        command[0] = str(self.which(command[0], command))
        self._cache[tool] = command
        logging.debug(f"Resolved {tool} for {self.target_triple}: {command}")
        return list(command)

    def c_compiler(self) -> List[str]:
        return self.command_for("CC")

    def cxx_compiler(self) -> List[str]:
        return self.command_for("CXX")

    def archiver(self) -> List[str]:
        return self.command_for("AR")

    def make(self) -> List[str]:
        """Return the make command for autotools builds.

        On MSVC this is nmake.exe from the Visual Studio installation.
        """
        override = self.env.tool_override("MAKE", self.target_triple)
        if override:
            command = shlex.split(override)
            command[0] = str(self.which(command[0], command))
            return command

        if self.platform.family == PlatformFamily.MSVC:
            return [str(self.find_msvc_tool("nmake.exe"))]

        name = "gmake" if self.platform.family == PlatformFamily.BSD else "make"
        return [str(self.which(name, [name]))]

    def cmake(self) -> List[str]:
        override = self.env.tool_override("CMAKE", self.target_triple)
        command = shlex.split(override) if override else ["cmake"]
        command[0] = str(self.which(command[0], command))
        return command

    def which(self, name: str, command: Optional[List[str]] = None) -> Path:
        """Resolve an executable name against the injected PATH.

        Raises:
            ToolchainNotFoundError: If nothing executable matches
        """
        found = shutil.which(name, path=self.env.path)
        if found is None:
            raise ToolchainNotFoundError(command or [name], "not found on PATH")
        return Path(found)

    def find_msvc_tool(self, tool: str) -> Path:
        """Locate an MSVC tool, falling back to the Visual Studio installation.

        Args:
            tool: Executable name, e.g. "nmake.exe"

        Raises:
            ToolchainNotFoundError: If neither PATH nor vswhere finds it
        """
        found = shutil.which(tool, path=self.env.path)
        if found is not None:
            return Path(found)

        install_path = self._vswhere_installation_path()
        if install_path is not None:
            arch = _MSVC_ARCH.get(self.target_triple.split("-")[0], "x64")
            candidates = sorted(install_path.glob(f"VC/Tools/MSVC/*/bin/Host*/{arch}/{tool}"))
            if candidates:
                logging.info(f"Found {tool} in Visual Studio installation: {candidates[-1]}")
                return candidates[-1]

        raise ToolchainNotFoundError([tool], "not found on PATH or in any Visual Studio installation")

    def _vswhere_installation_path(self) -> Optional[Path]:
        program_files = self.env.get("ProgramFiles(x86)") or self.env.get("ProgramFiles")
        if not program_files:
            return None

        vswhere = Path(program_files) / "Microsoft Visual Studio" / "Installer" / "vswhere.exe"
        if not vswhere.exists():
            return None

        cmd = [
            str(vswhere),
            "-latest",
            "-products", "*",
            "-requires", "Microsoft.VisualStudio.Component.VC.Tools.x86.x64",
            "-property", "installationPath",
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
        except (OSError, subprocess.TimeoutExpired) as e:
            logging.warning(f"vswhere failed: {e}")
            return None

        path = result.stdout.strip().splitlines()
        if result.returncode != 0 or not path:
            return None
        return Path(path[0])
