"""Launch plan: which processes to start, with what arguments.

Both processes share one persistence root so a binding resolves to the same
backing resource from either side:

1. gateway  ``python -m edgedeck.gateway`` on the shadow config
2. runtime  the emulator on the user's config (primary; its exit code is
            the run's exit code)
"""

import sys
from dataclasses import dataclass
from pathlib import Path

from edgedeck.errors import CompileFailed
from edgedeck.manifest import MANIFEST_ENV_VAR
from edgedeck.orchestrator.display import RunUrls
from edgedeck.orchestrator.process import ProcessSpec
from edgedeck.project.types import ProjectConfig
from edgedeck.settings import EdgeDeckSettings
from edgedeck.shadow import ShadowResult

GATEWAY_PROCESS = "gateway"
RUNTIME_PROCESS = "runtime"
DEFAULT_ENTRY = "src/index.ts"


@dataclass(frozen=True, slots=True)
class LaunchPlan:
    gateway: ProcessSpec
    runtime: ProcessSpec
    urls: RunUrls

    @property
    def primary(self) -> ProcessSpec:
        return self.runtime

    @property
    def processes(self) -> tuple[ProcessSpec, ...]:
        """Start order: gateway first, so it is listening when the app is."""
        return (self.gateway, self.runtime)


def check_entry_point(config: ProjectConfig) -> Path:
    """Resolve the application entry point.

    Raises:
        CompileFailed: If the entry point does not exist
    """
    entry = config.root_dir / (config.main or DEFAULT_ENTRY)
    if not entry.is_file():
        raise CompileFailed(str(entry), "entry point not found")
    return entry


def build_plan(
    config: ProjectConfig,
    shadow: ShadowResult,
    settings: EdgeDeckSettings,
    *,
    passthrough: tuple[str, ...] = (),
) -> LaunchPlan:
    """Build the argv, env and cwd of both processes."""
    host = settings.host
    app_url = f"http://{host}:{settings.port}"
    gateway_url = f"http://{host}:{settings.gateway_port}"
    persist = str(shadow.persist_dir)

    gateway_argv = [
        sys.executable, "-m", "edgedeck.gateway",
        "--config", str(shadow.shadow_config_path),
        "--persist-to", persist,
        "--host", host,
        "--port", str(settings.gateway_port),
        "--upstream", app_url,
    ]
    if settings.verbose:
        gateway_argv.append("--verbose")

    runtime_argv = [
        *settings.emulator_command,
        "-c", str(config.config_path),
        "--persist-to", persist,
        "--port", str(settings.port),
        *passthrough,
    ]

    return LaunchPlan(
        gateway=ProcessSpec(
            name=GATEWAY_PROCESS,
            argv=tuple(gateway_argv),
            cwd=config.root_dir,
            env={MANIFEST_ENV_VAR: shadow.manifest.to_json()},
        ),
        runtime=ProcessSpec(
            name=RUNTIME_PROCESS,
            argv=tuple(runtime_argv),
            cwd=config.root_dir,
        ),
        urls=RunUrls(
            app=app_url,
            gateway=gateway_url,
            dashboard=f"{settings.dashboard_url}?port={settings.gateway_port}",
        ),
    )
