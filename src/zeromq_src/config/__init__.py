"""Configuration for zeromq-src builds.

This module provides the immutable build options, the chained builder that
produces them, and the injected environment snapshot.
"""

from .environment import Environment
from .options import Build, BuildOptions, LibLocation, ToolchainMode

__all__ = [
    "Build",
    "BuildOptions",
    "Environment",
    "LibLocation",
    "ToolchainMode",
]
