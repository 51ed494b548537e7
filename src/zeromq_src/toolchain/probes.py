"""Capability probes for the active toolchain.

Each probe writes a tiny fixed program into a scratch directory, compiles it
with the target compiler and reports whether that worked. A probe that fails
to compile is the normal "capability absent" answer. A compiler that cannot be
started at all is a ProbeError.

Results are never cached: the answer depends on the active toolchain, which
may change between invocations.
"""

import logging
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..errors import ProbeError, ToolchainNotFoundError
from .platform_utils import PlatformFamily, PlatformInfo
from .toolchain_binaries import ToolchainBinaryFinder


class ProbeKind(Enum):
    """Questions the prober can answer."""

    STRLCPY_AVAILABLE = "strlcpy"
    CXX11_SUPPORTED = "cxx11"
    IPC_HEADERS_AVAILABLE = "ipc_headers"


_STRLCPY_PROGRAM = """\
#include <string.h>

int main(void)
{
    char buf[1];
    (void) strlcpy(buf, "a", 1);
    return 0;
}
"""

_CXX11_PROGRAM = """\
#include <condition_variable>
#include <mutex>

int main()
{
    std::mutex m;
    std::condition_variable cv;
    auto f = []() { return 0; };
    return f();
}
"""

_IPC_POSIX_PROGRAM = """\
#include <sys/socket.h>
#include <sys/un.h>

int main(void)
{
    struct sockaddr_un addr;
    addr.sun_family = AF_UNIX;
    return 0;
}
"""

_IPC_WINDOWS_PROGRAM = """\
#include <winsock2.h>
#include <afunix.h>

int main(void)
{
    struct sockaddr_un addr;
    addr.sun_family = AF_UNIX;
    return 0;
}
"""


class CapabilityProber:
    """Answers yes/no questions about the target toolchain."""

    def __init__(
        self,
        finder: ToolchainBinaryFinder,
        scratch_dir: Path,
        timeout: int = 120
    ):
        """Initialize the prober.

        Args:
            finder: Binary finder for the target toolchain
            scratch_dir: Directory under the output tree for probe sources
            timeout: Seconds to wait for a single probe compile
        """
        self.finder = finder
        self.scratch_dir = scratch_dir
        self.timeout = timeout

    @property
    def platform(self) -> PlatformInfo:
        return self.finder.platform

    @property
    def is_msvc(self) -> bool:
        return self.platform.family == PlatformFamily.MSVC

    def detect(self, platform: Optional[PlatformInfo] = None) -> PlatformInfo:
        """Run every probe and return the platform with its capability flags set.

        Raises:
            ProbeError: If the compiler cannot be invoked
        """
        platform = platform or self.platform
        return platform.with_capabilities(
            has_strlcpy=self.probe(ProbeKind.STRLCPY_AVAILABLE),
            has_cxx11=self.probe(ProbeKind.CXX11_SUPPORTED),
            has_ipc_headers=self.probe(ProbeKind.IPC_HEADERS_AVAILABLE),
        )

    def probe(self, kind: ProbeKind) -> bool:
        """Answer a single capability question.

        Args:
            kind: The capability to test

        Returns:
            True if the probe program compiled (and, where it is linked and
            the build is native, ran successfully)

        Raises:
            ProbeError: If the compiler cannot be invoked at all
        """
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f"probe-{kind.value}-", dir=self.scratch_dir) as tmp:
            workdir = Path(tmp)
            if kind == ProbeKind.STRLCPY_AVAILABLE:
                source = workdir / "probe.c"
                source.write_text(_STRLCPY_PROGRAM)
                executable = workdir / ("probe.exe" if self.is_msvc else "probe")
                ok = self._compile(self._c_compiler(), source, executable, link=True)
                if ok and not self.finder.is_cross:
                    ok = self._run(executable)
            elif kind == ProbeKind.CXX11_SUPPORTED:
                source = workdir / "probe.cpp"
                source.write_text(_CXX11_PROGRAM)
                extra = ["/EHsc"] if self.is_msvc else ["-std=c++11"]
                ok = self._compile(self._cxx_compiler(), source, workdir / "probe.o", extra_flags=extra)
            else:
                source = workdir / "probe.c"
                program = _IPC_WINDOWS_PROGRAM if self.platform.family.is_windows else _IPC_POSIX_PROGRAM
                source.write_text(program)
                ok = self._compile(self._c_compiler(), source, workdir / "probe.o")

        logging.info(f"Capability probe {kind.value}: {'yes' if ok else 'no'}")
        return ok

    def _c_compiler(self) -> List[str]:
        try:
            return self.finder.c_compiler()
        except ToolchainNotFoundError as e:
            raise ProbeError(f"Cannot run capability probes: {e}") from e

    def _cxx_compiler(self) -> List[str]:
        try:
            return self.finder.cxx_compiler()
        except ToolchainNotFoundError as e:
            raise ProbeError(f"Cannot run capability probes: {e}") from e

    def _compile(
        self,
        compiler: List[str],
        source: Path,
        output: Path,
        extra_flags: Optional[List[str]] = None,
        link: bool = False
    ) -> bool:
        cmd = list(compiler)
        if self.is_msvc:
            cmd.append("/nologo")
            cmd.extend(extra_flags or [])
            if link:
                cmd.extend([str(source), f"/Fe{output}"])
            else:
                cmd.extend(["/c", str(source), f"/Fo{output}"])
        else:
            if source.suffix == ".c":
                cmd.append("-Werror=implicit-function-declaration")
            cmd.extend(extra_flags or [])
            if not link:
                cmd.append("-c")
            cmd.extend([str(source), "-o", str(output)])

        logging.debug(f"Probe command: {cmd}")
        try:
            result = subprocess.run(
                cmd,
                cwd=source.parent,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self.finder.env.child_environment(),
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ProbeError(f"Failed to invoke compiler {cmd[0]}: {e}") from e
        except subprocess.TimeoutExpired:
            logging.warning(f"Probe compile timed out: {source.name}")
            return False

        return result.returncode == 0

    def _run(self, executable: Path) -> bool:
        try:
            result = subprocess.run(
                [str(executable)],
                capture_output=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logging.debug(f"Probe executable did not run: {e}")
            return False
        return result.returncode == 0
