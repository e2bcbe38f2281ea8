"""Shadow config generation.

Writes a second runtime config describing the gateway application. It
declares the *same* binding identifiers and resource ids as the user's
application, so both processes resolve a binding to the same backing
resource, plus:

- a service binding (EDGEDECK_USER_APP) back to the user's application
- a var (EDGEDECK_MANIFEST) holding the serialized binding manifest

Layout of the per-project working directory:

    <project>/.edgedeck/
        wrangler.toml        generated shadow config (overwritten every run)
        state/               shared persistence root
            d1/ kv/ r2/ do/ cache/

Output is deterministic: generating twice from the same config writes
byte-identical files.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from edgedeck.manifest import MANIFEST_ENV_VAR, BindingManifest
from edgedeck.project.types import (
    DurableObjectBinding,
    DurableObjectsConfig,
    ProjectConfig,
    QueuesConfig,
    ServiceBindingConfig,
)

logger = logging.getLogger(__name__)

GATEWAY_NAME = "edgedeck-gateway"
USER_APP_BINDING = "EDGEDECK_USER_APP"
SHADOW_FILENAME = "wrangler.toml"
STATE_DIRNAME = "state"
PERSIST_SUBDIRS: tuple[str, ...] = ("d1", "kv", "r2", "do", "cache")

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True, slots=True)
class ShadowResult:
    """Where the shadow config was written and what it carries."""

    shadow_config_path: Path
    manifest: BindingManifest
    work_dir: Path
    persist_dir: Path


def user_app_name(config: ProjectConfig) -> str:
    """Name the user's application is reachable under (service binding target)."""
    return config.name or config.root_dir.name or "app"


def build_shadow_config(config: ProjectConfig, manifest: BindingManifest) -> ProjectConfig:
    """Derive the gateway's config from the user's.

    Every binding keeps its identifier, kind and resource id, user service
    bindings included, and one service binding to the user's application is
    added. Queue consumers are left out: the gateway only produces.
    """
    app_name = user_app_name(config)

    if MANIFEST_ENV_VAR in config.vars:
        logger.warning("User var %s is shadowed by the generated manifest", MANIFEST_ENV_VAR)
    shadow_vars: dict[str, Any] = {MANIFEST_ENV_VAR: manifest.to_json()}
    shadow_vars.update({k: v for k, v in config.vars.items() if k != MANIFEST_ENV_VAR})

    if any(s.binding == USER_APP_BINDING for s in config.services):
        logger.warning("User service binding %s is replaced by the gateway's", USER_APP_BINDING)
    services = (
        *(s for s in config.services if s.binding != USER_APP_BINDING),
        ServiceBindingConfig(binding=USER_APP_BINDING, service=app_name),
    )

    actors = tuple(
        DurableObjectBinding(
            name=d.name,
            class_name=d.class_name,
            script_name=d.script_name or app_name,
        )
        for d in config.durable_objects.bindings
    )

    return ProjectConfig(
        name=GATEWAY_NAME,
        compatibility_date=config.compatibility_date,
        compatibility_flags=config.compatibility_flags,
        d1_databases=config.d1_databases,
        kv_namespaces=config.kv_namespaces,
        r2_buckets=config.r2_buckets,
        durable_objects=DurableObjectsConfig(bindings=actors),
        queues=QueuesConfig(producers=config.queues.producers),
        vars=shadow_vars,
        services=services,
    )


def generate(
    config: ProjectConfig,
    manifest: BindingManifest,
    *,
    work_dir: str | Path | None = None,
) -> ShadowResult:
    """Create the working directory and (over)write the shadow config.

    Args:
        config: The user's parsed config
        manifest: Manifest discovered from ``config``
        work_dir: Working directory; relative paths resolve against the
            config's directory. Defaults to ``.edgedeck``.

    Returns:
        ShadowResult with the written path and the persistence root.
    """
    base = Path(work_dir) if work_dir is not None else Path(".edgedeck")
    if not base.is_absolute():
        base = config.root_dir / base

    persist_dir = base / STATE_DIRNAME
    for sub in PERSIST_SUBDIRS:
        (persist_dir / sub).mkdir(parents=True, exist_ok=True)

    shadow = build_shadow_config(config, manifest)
    shadow_path = base / SHADOW_FILENAME
    shadow_path.write_text(format_toml(shadow), encoding="utf-8")
    logger.debug("Wrote shadow config %s", shadow_path)

    return ShadowResult(
        shadow_config_path=shadow_path,
        manifest=manifest,
        work_dir=base,
        persist_dir=persist_dir,
    )


# ═══════════════════════════════════════════════════════════════
# TOML OUTPUT
# tomllib is read-only, so configs are written with a small formatter.
# ═══════════════════════════════════════════════════════════════


def format_toml(config: ProjectConfig) -> str:
    """Format a ProjectConfig as a wrangler-style TOML document."""
    lines = [
        "# Generated by edgedeck. Regenerated on every run; do not edit.",
        "",
    ]

    if config.name:
        lines.append(f"name = {_value(config.name)}")
    if config.main:
        lines.append(f"main = {_value(config.main)}")
    if config.compatibility_date:
        lines.append(f"compatibility_date = {_value(config.compatibility_date)}")
    if config.compatibility_flags:
        lines.append(f"compatibility_flags = {_value(list(config.compatibility_flags))}")

    if config.vars:
        lines.extend(["", "[vars]"])
        for key, value in config.vars.items():
            lines.append(f"{_key(key)} = {_value(value)}")

    _array_tables(lines, "services", config.services)
    _array_tables(lines, "d1_databases", config.d1_databases)
    _array_tables(lines, "kv_namespaces", config.kv_namespaces)
    _array_tables(lines, "r2_buckets", config.r2_buckets)
    _array_tables(lines, "durable_objects.bindings", config.durable_objects.bindings)
    _array_tables(lines, "queues.producers", config.queues.producers)
    _array_tables(lines, "queues.consumers", config.queues.consumers)

    lines.append("")
    return "\n".join(lines)


def _array_tables(lines: list[str], header: str, records: tuple[Any, ...]) -> None:
    for record in records:
        lines.extend(["", f"[[{header}]]"])
        for key, value in record.model_dump(exclude_none=True).items():
            lines.append(f"{_key(key)} = {_value(value)}")


def _key(key: str) -> str:
    return key if _BARE_KEY.match(key) else json.dumps(key)


def _value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_value(v) for v in value) + "]"
    # JSON string escapes are valid TOML basic-string escapes; TOML also forbids raw DEL
    return json.dumps(str(value), ensure_ascii=False).replace("\x7f", "\\u007f")
