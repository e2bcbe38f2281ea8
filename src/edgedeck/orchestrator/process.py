"""Managed child processes.

Thin wrapper over asyncio subprocesses: stdout and stderr are pumped into a
callback chunk by chunk, shutdown is always a polite SIGTERM, and the exit
code of a process killed by a signal is reported as None.
"""

import asyncio
import logging
import os
import shlex
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from edgedeck.orchestrator.output import StreamName

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str, StreamName, bytes], None]
"""Called with (process name, stream, chunk)."""

_CHUNK_SIZE = 4096
_DRAIN_TIMEOUT = 2.0


@dataclass(frozen=True, slots=True)
class ProcessSpec:
    """How to start one child process."""

    name: str
    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


class ManagedProcess:
    """One running child process with output pumps."""

    def __init__(self, spec: ProcessSpec, on_output: ChunkCallback) -> None:
        self.spec = spec
        self._on_output = on_output
        self._proc: asyncio.subprocess.Process | None = None
        self._pumps: list[asyncio.Task[None]] = []

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self) -> None:
        """Spawn the process.

        Raises:
            OSError: If the executable cannot be started
        """
        env = {**os.environ, **self.spec.env}
        logger.debug("Starting %s: %s", self.name, self.spec.command_line)
        self._proc = await asyncio.create_subprocess_exec(
            *self.spec.argv,
            cwd=str(self.spec.cwd) if self.spec.cwd else None,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._pumps = [
            asyncio.create_task(self._pump(self._proc.stdout, "stdout")),
            asyncio.create_task(self._pump(self._proc.stderr, "stderr")),
        ]

    async def _pump(self, reader: asyncio.StreamReader | None, stream: StreamName) -> None:
        if reader is None:
            return
        while chunk := await reader.read(_CHUNK_SIZE):
            self._on_output(self.name, stream, chunk)

    async def wait(self) -> int | None:
        """Wait for exit and drain output.

        Returns:
            The exit code, or None if the process was killed by a signal
        """
        if self._proc is None:
            return None
        code = await self._proc.wait()
        if self._pumps:
            # Grandchildren can hold the pipes open after the child is gone
            _, pending = await asyncio.wait(self._pumps, timeout=_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
        logger.debug("%s exited with %s", self.name, code)
        return None if code < 0 else code

    def terminate(self) -> None:
        """Ask the process to stop (SIGTERM). Never escalates to a kill."""
        if not self.running:
            return
        logger.debug("Terminating %s (pid %s)", self.name, self.pid)
        try:
            self._proc.terminate()
        except ProcessLookupError:
            logger.debug("%s already gone", self.name)
