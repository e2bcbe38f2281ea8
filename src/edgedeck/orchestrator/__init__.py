"""Process orchestration for a local run: gateway + user runtime."""

from edgedeck.orchestrator.display import ConsoleDisplay, LiveDisplay, RunUrls, create_console
from edgedeck.orchestrator.launcher import LaunchPlan, build_plan, check_entry_point
from edgedeck.orchestrator.orchestrator import Orchestrator
from edgedeck.orchestrator.output import Display, OutputLine, OutputRouter, is_noise
from edgedeck.orchestrator.process import ManagedProcess, ProcessSpec
from edgedeck.orchestrator.state import IllegalTransition, RunState, RunStateMachine

__all__ = [
    "ConsoleDisplay",
    "Display",
    "IllegalTransition",
    "LaunchPlan",
    "LiveDisplay",
    "ManagedProcess",
    "Orchestrator",
    "OutputLine",
    "OutputRouter",
    "ProcessSpec",
    "RunState",
    "RunStateMachine",
    "RunUrls",
    "build_plan",
    "check_entry_point",
    "create_console",
    "is_noise",
]
