"""edgedeck command line.

    edgedeck [CONFIG_PATH] [OPTIONS] [-- EMULATOR_ARGS...]

Finds the project config, lists its bindings, writes the shadow config for
the gateway and runs the gateway next to the user's runtime until the
runtime exits. The exit code mirrors the runtime's.
"""

import logging
import sys
from pathlib import Path

import click

from edgedeck import __version__
from edgedeck.cli.async_runner import run_async
from edgedeck.cli.error_handler import handle_error
from edgedeck.errors import EdgeDeckError, SubprocessExit
from edgedeck.logging import configure_logging
from edgedeck.manifest import discover, format_bindings
from edgedeck.orchestrator import (
    ConsoleDisplay,
    LiveDisplay,
    Orchestrator,
    build_plan,
    check_entry_point,
    create_console,
)
from edgedeck.project.parser import parse
from edgedeck.settings import EdgeDeckSettings, get_settings, with_overrides
from edgedeck.shadow import generate

logger = logging.getLogger(__name__)

console = create_console()

PASSTHROUGH_KEY = "edgedeck.passthrough"


class PassthroughCommand(click.Command):
    """Command that hands everything after ``--`` to the emulator untouched.

    Without this, click would bind the first pass-through argument to the
    optional CONFIG_PATH.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if "--" in args:
            split = args.index("--")
            ctx.meta[PASSTHROUGH_KEY] = tuple(args[split + 1:])
            args = args[:split]
        return super().parse_args(ctx, args)


def cli_entrypoint() -> None:
    """Entry point with global error handling. Called from [project.scripts]."""
    try:
        main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("\n[edgedeck.muted]Interrupted[/]")
        sys.exit(130)
    except Exception as e:
        handle_error(e)


@click.command(cls=PassthroughCommand)
@click.argument(
    "config_path",
    required=False,
    type=click.Path(path_type=Path),
)
@click.option("-p", "--port", type=int, default=None, help="Port for your application")
@click.option("--gateway-port", type=int, default=None, help="Port for the binding gateway")
@click.option("-v", "--verbose", is_flag=True, default=None, help="Show all runtime output")
@click.option(
    "--open/--no-open", "open_browser",
    default=None,
    help="Open the dashboard when the runtime is ready",
)
@click.option("--tui/--no-tui", default=None, help="Use the live status display")
@click.version_option(__version__, prog_name="edgedeck")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    port: int | None,
    gateway_port: int | None,
    verbose: bool | None,
    open_browser: bool | None,
    tui: bool | None,
) -> None:
    """Run your edge application locally with a binding dashboard.

    CONFIG_PATH is a wrangler.json, wrangler.jsonc or wrangler.toml file, or
    a directory to search from. Without it, edgedeck searches from the
    current directory upwards.

    \b
    Examples:
        edgedeck                         # Find the config and start
        edgedeck ./api/wrangler.toml     # Explicit config
        edgedeck -p 9000 --no-open       # Custom port, no browser
        edgedeck -- --remote             # Pass flags to the emulator
    """
    settings = with_overrides(
        get_settings(),
        port=port,
        gateway_port=gateway_port,
        verbose=verbose or None,
        open_browser=open_browser,
        tui=tui,
    )
    configure_logging(verbose=settings.verbose)
    passthrough = ctx.meta.get(PASSTHROUGH_KEY, ())

    try:
        code = _run(config_path, settings, passthrough)
    except EdgeDeckError as e:
        handle_error(e)

    if code != 0:
        handle_error(SubprocessExit(" ".join(settings.emulator_command), code))


def _run(config_path: Path | None, settings: EdgeDeckSettings, passthrough: tuple[str, ...]) -> int:
    console.print(f"[edgedeck.accent]edgedeck[/] [edgedeck.muted]v{__version__}[/]")
    console.print()

    config = parse(config_path)
    console.print(f"   Config: {config.config_path}")

    manifest = discover(config)
    if manifest.is_empty():
        console.print("   [edgedeck.warning]No bindings found[/]")
    else:
        console.print("   Bindings:")
        for line in format_bindings(manifest):
            console.print(line, markup=False)
    console.print()

    check_entry_point(config)
    shadow = generate(config, manifest, work_dir=settings.work_dir)
    plan = build_plan(config, shadow, settings, passthrough=passthrough)

    interactive = settings.tui and sys.stdout.isatty() and sys.stdin.isatty()
    display = (
        LiveDisplay(console, urls=plan.urls) if interactive
        else ConsoleDisplay(console, urls=plan.urls)
    )
    orchestrator = Orchestrator(
        plan,
        display,
        ready_markers=settings.ready_markers,
        verbose=settings.verbose,
        open_browser=settings.open_browser,
    )
    if isinstance(display, LiveDisplay):
        display.on_exit_requested = orchestrator.request_stop

    return run_async(orchestrator.run())
