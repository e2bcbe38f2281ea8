"""Orchestrator: runs the gateway and the user's runtime side by side.

Drives the RunStateMachine:

    run()            IDLE -> STARTING, spawn gateway then runtime
    readiness        STARTING -> RUNNING (OutputRouter, first marker only)
    SIGINT/SIGTERM   -> STOPPING, SIGTERM to every child
    or 'q'
    child exits      remaining children are terminated and awaited -> EXITED

The return value of run() mirrors the runtime's exit code; a child killed by
a signal counts as 0. If the gateway exits first, the run fails with
SubprocessExit carrying the gateway's code (1 when it had none). There is no
restart.
"""

import asyncio
import logging
import signal
import webbrowser
from collections.abc import Callable, Sequence

from edgedeck.errors import SubprocessExit
from edgedeck.orchestrator.launcher import LaunchPlan
from edgedeck.orchestrator.output import Display, OutputRouter
from edgedeck.orchestrator.process import ManagedProcess
from edgedeck.orchestrator.state import RunState, RunStateMachine

logger = logging.getLogger(__name__)

# Shell convention for "command not found"
SPAWN_FAILED_EXIT = 127


class Orchestrator:
    """Start, watch and stop the processes of a LaunchPlan.

    Args:
        plan: Processes to run; ``plan.primary`` decides the exit code
        display: ConsoleDisplay, LiveDisplay or any other Display
        ready_markers: Substrings on the primary's stdout that mark readiness
        verbose: Forwarded to the OutputRouter
        open_browser: Open the dashboard once, on readiness
        on_ready: Extra one-shot readiness hook
    """

    def __init__(
        self,
        plan: LaunchPlan,
        display: Display,
        *,
        ready_markers: Sequence[str] = ("Ready", "Listening"),
        verbose: bool = False,
        open_browser: bool = False,
        on_ready: Callable[[], None] | None = None,
    ) -> None:
        self.plan = plan
        self.display = display
        self.open_browser = open_browser
        self.on_ready = on_ready
        self.state = RunStateMachine()
        self._failed: tuple[ManagedProcess, int | None] | None = None
        self.state.subscribe(display.on_state)
        self.router = OutputRouter(
            state=self.state,
            sink=display,
            primary=plan.primary.name,
            ready_markers=ready_markers,
            verbose=verbose,
            on_ready=self._handle_ready,
        )
        self.processes: list[ManagedProcess] = [
            ManagedProcess(spec, self.router.feed) for spec in plan.processes
        ]

    @property
    def primary(self) -> ManagedProcess:
        return next(p for p in self.processes if p.name == self.plan.primary.name)

    def request_stop(self) -> None:
        """Begin a graceful shutdown. Repeated requests are ignored."""
        if self.state.request_stop():
            for proc in self.processes:
                proc.terminate()

    async def run(self) -> int:
        """Run until the primary process exits.

        Returns:
            The primary's exit code (0 if it was stopped by a signal)

        Raises:
            SubprocessExit: If a process cannot be spawned at all, or a
                process other than the primary exits on its own
        """
        self.state.transition(RunState.STARTING)
        self.display.start()
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)
        try:
            await self._spawn_all()
            codes = await self._wait_all()
        finally:
            self._remove_signal_handlers(loop)
            self.router.flush()
            self.state.mark_exited()
            self.display.stop()

        if self._failed is not None:
            proc, failed_code = self._failed
            raise SubprocessExit(proc.spec.command_line, failed_code or 1)

        code = codes.get(self.primary.name)
        return 0 if code is None else code

    async def _spawn_all(self) -> None:
        for proc in self.processes:
            try:
                await proc.start()
            except OSError as e:
                logger.debug("Could not start %s: %s", proc.name, e)
                self.request_stop()
                for started in self.processes:
                    await started.wait()
                raise SubprocessExit(proc.spec.command_line, SPAWN_FAILED_EXIT) from e

    async def _wait_all(self) -> dict[str, int | None]:
        waits = {asyncio.create_task(proc.wait()): proc for proc in self.processes}
        codes: dict[str, int | None] = {}
        pending = set(waits)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                proc = waits[task]
                codes[proc.name] = task.result()
                if self.state.state not in (RunState.STOPPING, RunState.EXITED):
                    logger.debug("%s exited on its own; stopping the rest", proc.name)
                    if proc.name != self.primary.name:
                        logger.warning("The %s process exited unexpectedly", proc.name)
                        self._failed = (proc, codes[proc.name])
                    self._stop_remaining()
        return codes

    def _stop_remaining(self) -> None:
        # The run ends without passing through STOPPING
        self.state.mark_exited()
        for proc in self.processes:
            proc.terminate()

    def _handle_ready(self) -> None:
        self.display.show_ready()
        if self.open_browser:
            logger.debug("Opening %s", self.plan.urls.dashboard)
            webbrowser.open(self.plan.urls.dashboard)
        if self.on_ready is not None:
            self.on_ready()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unavailable for %s", sig.name)

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unavailable for %s", sig.name)
