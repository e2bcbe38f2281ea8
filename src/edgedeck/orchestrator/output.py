"""Subprocess output routing.

Every chunk the child processes write goes through an OutputRouter, which

- splits chunks into lines (a line may arrive across several chunks),
- watches the primary process's stdout for the first readiness marker,
- tags lines the user does not need to see (gateway chatter), and
- forwards each line to the display, or drops it.

Routing rules:
    live display               every line
    console, after ready       primary stdout that is not noise
    console, before ready      primary stdout, only when verbose
    stderr / gateway output    only when verbose
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

from edgedeck.orchestrator.state import RunState, RunStateMachine

logger = logging.getLogger(__name__)

StreamName = Literal["stdout", "stderr"]

NOISE_SUBSTRINGS: tuple[str, ...] = (
    "/__edgedeck/",
    "edgedeck-gateway has access",
    "env.EDGEDECK_MANIFEST",
    "env.EDGEDECK_USER_APP",
    "Reloading local server",
)

# Header of the emulator's binding table
_BINDING_TABLE = re.compile(r"\bBinding\b.*\bResource\b.*\bMode\b")

# Colour codes would defeat substring matching
_ANSI = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    return _ANSI.sub("", text)


def is_noise(line: str) -> bool:
    """True for output the gateway side produces that users never need."""
    plain = strip_ansi(line)
    return any(s in plain for s in NOISE_SUBSTRINGS) or bool(_BINDING_TABLE.search(plain))


@dataclass(frozen=True, slots=True)
class OutputLine:
    source: str
    stream: StreamName
    text: str
    noise: bool = False


class OutputSink(Protocol):
    @property
    def is_live(self) -> bool: ...

    def write_line(self, line: OutputLine) -> None: ...


@runtime_checkable
class Display(OutputSink, Protocol):
    """What the orchestrator drives: an output sink that also follows the run."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def on_state(self, previous: RunState, current: RunState) -> None: ...

    def show_ready(self) -> None: ...


class OutputRouter:
    """Turns raw process output into routed lines.

    Args:
        state: Run state machine; readiness moves it STARTING -> RUNNING
        sink: Display receiving the lines that pass the routing rules
        primary: Source name of the process whose stdout signals readiness
        ready_markers: Substrings that mark readiness
        verbose: Show pre-ready output, stderr and gateway output
        on_ready: Called once, the first time a readiness marker is seen
    """

    def __init__(
        self,
        *,
        state: RunStateMachine,
        sink: OutputSink,
        primary: str,
        ready_markers: Sequence[str] = ("Ready", "Listening"),
        verbose: bool = False,
        on_ready: Callable[[], None] | None = None,
    ) -> None:
        self.state = state
        self.sink = sink
        self.primary = primary
        self.ready_markers = tuple(ready_markers)
        self.verbose = verbose
        self.on_ready = on_ready
        self._ready = False
        self._partial: dict[tuple[str, str], str] = {}

    @property
    def ready(self) -> bool:
        return self._ready

    def feed(self, source: str, stream: StreamName, chunk: bytes | str) -> None:
        """Accept one chunk of output from ``source``."""
        text = chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else chunk
        key = (source, stream)
        buffered = self._partial.pop(key, "") + text
        *complete, rest = buffered.split("\n")
        if rest:
            self._partial[key] = rest
        for raw in complete:
            self._emit(source, stream, raw.rstrip("\r"))
        # A prompt-style marker may never be followed by a newline
        if rest and self._watches(source, stream):
            self._check_ready(rest)

    def flush(self) -> None:
        """Emit any unterminated trailing lines (call when processes exit)."""
        partial, self._partial = self._partial, {}
        for (source, stream), text in partial.items():
            self._emit(source, stream, text.rstrip("\r"))

    def _emit(self, source: str, stream: StreamName, text: str) -> None:
        if self._watches(source, stream):
            self._check_ready(text)

        line = OutputLine(source=source, stream=stream, text=text, noise=is_noise(text))
        if self._should_show(line):
            self.sink.write_line(line)

    def _watches(self, source: str, stream: StreamName) -> bool:
        return not self._ready and source == self.primary and stream == "stdout"

    def _check_ready(self, text: str) -> None:
        plain = strip_ansi(text)
        if not any(marker in plain for marker in self.ready_markers):
            return
        self._ready = True
        if self.state.mark_ready():
            logger.debug("Readiness marker seen: %s", plain.strip())
            if self.on_ready is not None:
                self.on_ready()

    def _should_show(self, line: OutputLine) -> bool:
        if self.sink.is_live:
            return True
        if line.source != self.primary or line.stream == "stderr":
            return self.verbose
        if not self._ready:
            return self.verbose
        return not line.noise
