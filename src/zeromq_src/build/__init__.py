"""
Build system components for zeromq-src.

This module provides the build pipeline implementation including:
- Build plan derivation (defines, include paths, sources, toolchain flags)
- Toolchain execution (autotools, CMake, direct compilation)
- Artifact resolution after a successful build
- Build orchestration
"""

from .artifact_resolver import ArtifactResolver
from .build_plan import BuildPlan, BuildPlanBuilder, build_plan
from .command_runner import (
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .orchestrator import BuildOrchestrator, BuildState
from .toolchain_driver import ToolchainDriver

__all__ = [
    'ArtifactResolver',
    'BuildOrchestrator',
    'BuildPlan',
    'BuildPlanBuilder',
    'BuildState',
    'CommandResult',
    'CommandRunner',
    'RecordingCommandRunner',
    'SubprocessCommandRunner',
    'ToolchainDriver',
    'build_plan',
]
