"""Injected process environment.

The build pipeline never reads os.environ directly. The outer boundary (the
CLI, or a caller embedding the library) captures the environment once into an
Environment value and passes it down. Tests build synthetic environments with
Environment.from_mapping().

Recognised variables:
    TARGET, HOST     Target and host triples
    OUT_DIR          Root directory for build and install side effects
    PROFILE          "debug" selects a debug build when not set explicitly
    NUM_JOBS         Parallelism forwarded to make / cmake
    CC, CXX, AR      Compiler and archiver overrides
    MAKE, CMAKE      Build tool overrides
    PATH             Search path used to locate toolchain executables
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import psutil


@dataclass(frozen=True)
class Environment:
    """Snapshot of the variables the build pipeline consumes."""

    variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_os_environ(cls) -> "Environment":
        """Capture the current process environment."""
        return cls(variables=dict(os.environ))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "Environment":
        """Build an environment from an explicit mapping."""
        return cls(variables=dict(mapping))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return a variable, treating empty or blank strings as unset."""
        value = self.variables.get(name)
        if value is None or not value.strip():
            return default
        return value

    @property
    def target(self) -> Optional[str]:
        return self.get("TARGET")

    @property
    def host(self) -> Optional[str]:
        return self.get("HOST")

    @property
    def out_dir(self) -> Optional[Path]:
        value = self.get("OUT_DIR")
        return Path(value) if value else None

    @property
    def debug_profile(self) -> bool:
        """True when PROFILE asks for a debug build."""
        return (self.get("PROFILE") or "").lower() == "debug"

    @property
    def path(self) -> Optional[str]:
        return self.get("PATH")

    @property
    def num_jobs(self) -> int:
        """Parallelism for make and cmake.

        Uses NUM_JOBS when it is a positive integer, otherwise the logical
        CPU count of the machine.
        """
        value = self.get("NUM_JOBS")
        if value is not None:
            try:
                jobs = int(value)
                if jobs > 0:
                    return jobs
            except ValueError:
                pass
        return psutil.cpu_count(logical=True) or 1

    def tool_override(self, name: str, target: Optional[str] = None) -> Optional[str]:
        """Look up a tool override such as CC.

        Target specific forms take precedence, in the order
        CC_<target>, CC_<target_with_underscores>, CC.

        Args:
            name: Variable name (CC, CXX, AR, MAKE, CMAKE)
            target: Target triple, if known
        """
        if target:
            for key in (f"{name}_{target}", f"{name}_{target.replace('-', '_')}"):
                value = self.get(key)
                if value:
                    return value
        return self.get(name)

    def child_environment(self, overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Return a copy of the environment for a subprocess.

        The copy is independent, so a child's overrides never leak into the
        next stage.
        """
        env = dict(self.variables)
        if overrides:
            env.update(overrides)
        return env
