"""
Build orchestration for zeromq-src.

This module sequences one build invocation:

    classify -> probe -> plan -> execute toolchain -> resolve artifacts

State machine (per invocation):
    CONFIGURED -> PLANNED -> BUILDING -> SUCCEEDED | FAILED

FAILED is terminal; the error that caused it propagates to the caller.
Artifact resolution runs after SUCCEEDED and promotes any failure to FAILED.
Nothing runs concurrently and nothing is retried.
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from ..cli_utils import BannerFormatter
from ..config.environment import Environment
from ..config.options import BuildOptions
from ..metadata import Artifacts
from ..toolchain.platform_utils import PlatformClassifier, PlatformInfo
from ..toolchain.probes import CapabilityProber
from ..toolchain.toolchain_binaries import ToolchainBinaryFinder
from .artifact_resolver import ArtifactResolver
from .build_plan import BuildPlan, BuildPlanBuilder
from .command_runner import CommandRunner, SubprocessCommandRunner
from .toolchain_driver import ToolchainDriver


class BuildState(Enum):
    """Lifecycle of a single build invocation."""

    CONFIGURED = "configured"
    PLANNED = "planned"
    BUILDING = "building"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BuildOrchestrator:
    """
    Orchestrates one libzmq build from options to artifacts.

    Collaborators can be injected for tests: a CommandRunner replaces real
    subprocesses, and probe_capabilities=False skips the capability probes
    (the conservative answers are used instead).
    """

    def __init__(
        self,
        env: Optional[Environment] = None,
        source_dir: Optional[Path] = None,
        runner: Optional[CommandRunner] = None,
        show_progress: bool = True,
        verbose: bool = False,
        probe_capabilities: bool = True
    ):
        """
        Initialize the orchestrator.

        Args:
            env: Injected environment (defaults to an empty one)
            source_dir: Vendored libzmq tree (defaults to the bundled copy)
            runner: Command runner for toolchain processes
            show_progress: Print progress output
            verbose: Echo toolchain output
            probe_capabilities: Run capability probes before planning
        """
        from .. import source_dir as bundled_source_dir

        self.env = env or Environment()
        self.source_dir = source_dir or bundled_source_dir()
        self.runner = runner or SubprocessCommandRunner(verbose=verbose)
        self.show_progress = show_progress
        self.verbose = verbose
        self.probe_capabilities = probe_capabilities
        self.state: Optional[BuildState] = None
        self.history: List[BuildState] = []

    def build(self, options: BuildOptions) -> Artifacts:
        """Run the complete build and return the resolved artifacts.

        Args:
            options: Build options

        Returns:
            Artifacts for the consumer

        Raises:
            ConfigurationError: Before any side effect, for invalid options
            ProbeError: If the compiler cannot be invoked for probing
            ToolchainNotFoundError / ToolchainStageError: If the toolchain fails
            ArtifactResolutionError: If outputs are missing after the build
        """
        start_time = time.time()
        self.state = None
        self.history = []

        try:
            plan, platform = self.plan(options)

            if self.show_progress:
                BannerFormatter.print_banner(
                    f"Building libzmq for {options.target_triple}\n"
                    f"{plan.config_label} / {options.mode.value} / "
                    f"{'static' if options.link_static else 'dynamic'}",
                    center=False,
                )

            self._transition(BuildState.BUILDING)
            driver = ToolchainDriver(
                env=self.env,
                finder=ToolchainBinaryFinder(self.env, platform, options.host_triple),
                source_dir=self.source_dir,
                runner=self.runner,
                show_progress=self.show_progress,
            )
            driver.execute(plan, options.mode)
            self._transition(BuildState.SUCCEEDED)

            artifacts = ArtifactResolver().resolve(options.out_dir, platform, plan)
        except BaseException:
            if self.state is not None:
                self._transition(BuildState.FAILED)
            raise

        logging.info(f"libzmq build finished in {time.time() - start_time:.2f}s")
        return artifacts

    def plan(self, options: BuildOptions) -> Tuple[BuildPlan, PlatformInfo]:
        """Validate, classify, probe and plan without building.

        Returns:
            Tuple of (BuildPlan, PlatformInfo)
        """
        options.validate()
        platform = PlatformClassifier.platform_info(options.target_triple)
        builder = BuildPlanBuilder()

        # Unsupported combinations abort before any compiler is started.
        builder.check_supported(options, platform)
        self._transition(BuildState.CONFIGURED)

        platform = self.detect_capabilities(options, platform)
        plan = builder.build_plan(options, platform)
        self._transition(BuildState.PLANNED)
        return plan, platform

    def detect_capabilities(self, options: BuildOptions, platform: PlatformInfo) -> PlatformInfo:
        """Run the capability probes, unless disabled."""
        if not self.probe_capabilities:
            logging.info("Capability probes disabled, using conservative defaults")
            return platform

        finder = ToolchainBinaryFinder(self.env, platform, options.host_triple)
        prober = CapabilityProber(finder, scratch_dir=options.out_dir / "probe")
        return prober.detect(platform)

    def _transition(self, state: BuildState) -> None:
        logging.debug(f"Build state: {self.state.value if self.state else 'none'} -> {state.value}")
        self.state = state
        self.history.append(state)
