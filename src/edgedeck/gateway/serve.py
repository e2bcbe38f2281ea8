"""Gateway process entry point.

Started by the orchestrator as ``python -m edgedeck.gateway``:

    python -m edgedeck.gateway --config .edgedeck/wrangler.toml \\
        --persist-to .edgedeck/state --port 8788 --upstream http://127.0.0.1:8787

The manifest comes from the EDGEDECK_MANIFEST environment variable, falling
back to the var of the same name in the shadow config.
"""

import logging
import os
from pathlib import Path

import click
import uvicorn

from edgedeck.gateway.app import create_gateway_app
from edgedeck.logging import configure_logging
from edgedeck.manifest import MANIFEST_ENV_VAR, BindingManifest, load_manifest
from edgedeck.project.parser import parse
from edgedeck.project.types import ProjectConfig
from edgedeck.runtime.local import LocalRuntime
from edgedeck.settings import get_settings
from edgedeck.shadow import USER_APP_BINDING

logger = logging.getLogger(__name__)


def resolve_manifest(config: ProjectConfig) -> BindingManifest:
    """Process environment first, shadow config var second."""
    text = os.environ.get(MANIFEST_ENV_VAR)
    if not text:
        shadow_value = config.vars.get(MANIFEST_ENV_VAR)
        text = shadow_value if isinstance(shadow_value, str) else None
    return load_manifest(text)


@click.command()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Shadow config written by edgedeck",
)
@click.option(
    "--persist-to", "persist_dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Persistence root shared with the user application",
)
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8788, type=int, help="Port to listen on")
@click.option("--upstream", default=None, help="Base URL of the user application")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def main(
    config_path: Path,
    persist_dir: Path,
    host: str,
    port: int,
    upstream: str | None,
    verbose: bool,
) -> None:
    """Serve the binding gateway."""
    configure_logging(verbose=verbose)
    settings = get_settings()

    config = parse(config_path)
    manifest = resolve_manifest(config)
    services = {USER_APP_BINDING: upstream} if upstream else {}
    runtime = LocalRuntime(config, persist_dir, services=services)

    app = create_gateway_app(
        runtime,
        manifest,
        page_size=settings.page_size,
        cors_origins=(settings.dashboard_url,),
    )
    logger.info("edgedeck-gateway listening on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="debug" if verbose else "warning")
