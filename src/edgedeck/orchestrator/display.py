"""Terminal displays for a run.

Two implementations of the same passive observer:

- ConsoleDisplay: plain scrolling output, used when not on a TTY or when
  the interactive display is turned off.
- LiveDisplay: a rich ``Live`` panel with status, URLs and recent output.
  Pressing ``q`` asks the orchestrator to stop.

Neither display drives the run; they render state transitions and the lines
the OutputRouter hands them.
"""

import asyncio
import logging
import sys
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from edgedeck.orchestrator.output import OutputLine
from edgedeck.orchestrator.state import RunState

logger = logging.getLogger(__name__)

EDGEDECK_THEME = Theme({
    "edgedeck.accent": "bold cyan",
    "edgedeck.success": "bold green",
    "edgedeck.warning": "yellow",
    "edgedeck.error": "bold red",
    "edgedeck.muted": "dim",
    "edgedeck.url": "underline cyan",
})

_STATE_STYLES = {
    RunState.IDLE: ("○", "edgedeck.muted"),
    RunState.STARTING: ("◐", "edgedeck.warning"),
    RunState.RUNNING: ("●", "edgedeck.success"),
    RunState.STOPPING: ("◑", "edgedeck.warning"),
    RunState.EXITED: ("○", "edgedeck.muted"),
}


def create_console(**kwargs) -> Console:
    return Console(theme=EDGEDECK_THEME, highlight=False, **kwargs)


@dataclass(frozen=True, slots=True)
class RunUrls:
    app: str
    gateway: str
    dashboard: str


class ConsoleDisplay:
    """Scrolling plain output."""

    is_live = False

    def __init__(self, console: Console | None = None, *, urls: RunUrls) -> None:
        self.console = console or create_console()
        self.urls = urls

    def start(self) -> None:
        self.console.print("[edgedeck.muted]Starting local runtime...[/]")

    def stop(self) -> None:
        pass

    def on_state(self, previous: RunState, current: RunState) -> None:
        if current is RunState.STOPPING:
            self.console.print("[edgedeck.muted]Shutting down...[/]")

    def show_ready(self) -> None:
        self.console.print()
        self.console.print("[edgedeck.success]✓ Ready[/]")
        self.console.print(f"   App:       [edgedeck.url]{self.urls.app}[/]")
        self.console.print(f"   Gateway:   [edgedeck.url]{self.urls.gateway}[/]")
        self.console.print(f"   Dashboard: [edgedeck.url]{self.urls.dashboard}[/]")
        self.console.print()

    def write_line(self, line: OutputLine) -> None:
        text = Text(line.text)
        if line.stream == "stderr":
            text.stylize("dim")
        self.console.print(text)


class LiveDisplay:
    """Interactive panel.

    Args:
        console: Console to render on
        urls: URLs shown in the status block
        on_exit_requested: Called when the user presses ``q``
        max_lines: Recent output lines kept on screen
    """

    is_live = True

    def __init__(
        self,
        console: Console | None = None,
        *,
        urls: RunUrls,
        on_exit_requested: Callable[[], None] | None = None,
        max_lines: int = 20,
    ) -> None:
        self.console = console or create_console()
        self.urls = urls
        self.on_exit_requested = on_exit_requested
        self.state = RunState.IDLE
        self.lines: deque[OutputLine] = deque(maxlen=max_lines)
        self._started_at = time.monotonic()
        self._live: Live | None = None
        self._saved_tty: list | None = None

    def start(self) -> None:
        if self._live is not None:
            return
        self._started_at = time.monotonic()
        self._live = Live(
            self._build_display(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
        )
        self._live.start()
        self._watch_keys()

    def stop(self) -> None:
        self._unwatch_keys()
        if self._live:
            self._live.update(self._build_display())
            self._live.stop()
            self._live = None

    def on_state(self, previous: RunState, current: RunState) -> None:
        self.state = current
        self._refresh()

    def show_ready(self) -> None:
        self._refresh()

    def write_line(self, line: OutputLine) -> None:
        self.lines.append(line)
        self._refresh()

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._build_display())

    def _build_display(self) -> Panel:
        icon, style = _STATE_STYLES[self.state]

        status = Table.grid(padding=(0, 2))
        status.add_column(style="edgedeck.muted", justify="right")
        status.add_column()
        status.add_row("Status", Text(f"{icon} {self.state.value}", style=style))
        status.add_row("App", Text(self.urls.app, style="edgedeck.url"))
        status.add_row("Gateway", Text(self.urls.gateway, style="edgedeck.url"))
        status.add_row("Dashboard", Text(self.urls.dashboard, style="edgedeck.url"))
        status.add_row("Uptime", _format_elapsed(time.monotonic() - self._started_at))

        output = Text()
        for line in self.lines:
            output.append(line.text + "\n", style="dim" if line.stream == "stderr" else "")

        return Panel(
            Group(status, Text(""), output),
            title="[edgedeck.accent]edgedeck[/]",
            subtitle="[edgedeck.muted]q to quit[/]",
            border_style="edgedeck.muted",
        )

    # Key handling: cbreak mode on stdin, read through the event loop

    def _watch_keys(self) -> None:
        if not sys.stdin.isatty():
            return
        import termios
        import tty

        fd = sys.stdin.fileno()
        self._saved_tty = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        asyncio.get_running_loop().add_reader(fd, self._on_key)

    def _unwatch_keys(self) -> None:
        if self._saved_tty is None:
            return
        import termios

        fd = sys.stdin.fileno()
        asyncio.get_running_loop().remove_reader(fd)
        termios.tcsetattr(fd, termios.TCSADRAIN, self._saved_tty)
        self._saved_tty = None

    def _on_key(self) -> None:
        key = sys.stdin.read(1)
        if key.lower() == "q" and self.on_exit_requested is not None:
            logger.debug("Exit requested from the display")
            self.on_exit_requested()


def _format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"
