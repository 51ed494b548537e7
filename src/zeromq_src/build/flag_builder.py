"""Compilation Flag Builder.

This module renders a BuildPlan into command line flags for the target
compiler.

Design:
    - GNU-style compilers take -DNAME=value and -Ipath
    - MSVC takes /DNAME=value and /Ipath
    - User CFLAGS / CXXFLAGS from the environment are appended last so they
      can override plan flags
"""

import shlex
from pathlib import Path
from typing import List, Optional

from .build_plan import BuildPlan


class FlagBuilder:
    """Builds compilation flags from a build plan."""

    def __init__(
        self,
        plan: BuildPlan,
        user_cflags: Optional[List[str]] = None,
        user_cxxflags: Optional[List[str]] = None
    ):
        """Initialize flag builder.

        Args:
            plan: Derived build plan
            user_cflags: Extra flags for every translation unit (CFLAGS)
            user_cxxflags: Extra flags for C++ translation units (CXXFLAGS)
        """
        self.plan = plan
        self.user_cflags = user_cflags or []
        self.user_cxxflags = user_cxxflags or []

    @property
    def switch(self) -> str:
        return "/" if self.plan.is_msvc else "-"

    @staticmethod
    def parse_flag_string(flag_string: Optional[str]) -> List[str]:
        """Parse a flag string that may contain quoted values.

        Example:
            >>> FlagBuilder.parse_flag_string('-DFOO="bar baz" -O2')
            ['-DFOO=bar baz', '-O2']
        """
        if not flag_string:
            return []
        try:
            return shlex.split(flag_string)
        except ValueError:
            return flag_string.split()

    def define_flags(self) -> List[str]:
        """Render every plan define, sorted by name for stable command lines."""
        flags = []
        for name, value in sorted(self.plan.defines.items()):
            if value is None:
                flags.append(f"{self.switch}D{name}")
            else:
                flags.append(f"{self.switch}D{name}={value}")
        return flags

    def include_flags(self) -> List[str]:
        """Render include directories in search order."""
        return [f"{self.switch}I{self._format_path(path)}" for path in self.plan.include_dirs]

    def c_flags(self) -> List[str]:
        """Flags for a C translation unit, excluding include paths."""
        flags = list(self.plan.cflags)
        flags.extend(self.define_flags())
        flags.extend(self.user_cflags)
        return flags

    def cxx_flags(self) -> List[str]:
        """Flags for a C++ translation unit, excluding include paths."""
        flags = list(self.plan.cflags)
        flags.extend(self.plan.cxxflags)
        flags.extend(self.define_flags())
        flags.extend(self.user_cflags)
        flags.extend(self.user_cxxflags)
        return flags

    def _format_path(self, path: Path) -> str:
        if self.plan.is_msvc:
            return str(path)
        # Response files treat backslashes as escapes.
        return str(path).replace("\\", "/")
