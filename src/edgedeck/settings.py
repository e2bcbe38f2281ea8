"""edgedeck tool settings.

Loads settings from .edgedeck/config.yaml with sensible defaults.
All settings can be overridden via environment variables (EDGEDECK_*).

Settings locations (in priority order):
1. Environment variables (EDGEDECK_PORT, EDGEDECK_TUI, ...)
2. Explicit path passed to load_settings()
3. .edgedeck/config.yaml (project-local)
4. ~/.edgedeck/config.yaml (user-global)
5. Built-in defaults

These are settings for the tool itself. The user's application config
(wrangler.toml and friends) is handled by edgedeck.project.
"""

import logging
import os
import threading
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_ENV_PREFIX = "EDGEDECK_"


@dataclass(frozen=True, slots=True)
class EdgeDeckSettings:
    """Root settings for edgedeck."""

    port: int = 8787
    """Port for the user's application runtime."""

    gateway_port: int = 8788
    """Port the binding gateway listens on."""

    host: str = "127.0.0.1"
    """Interface both processes bind to."""

    work_dir: str = ".edgedeck"
    """Per-project working directory (relative to the config file)."""

    emulator_command: tuple[str, ...] = ("npx", "wrangler", "dev")
    """Command that starts the edge-runtime emulator for the user's application."""

    dashboard_url: str = "http://localhost:5174"
    """Dashboard opened once the runtime is ready (?port= is appended)."""

    open_browser: bool = True
    """Open the dashboard automatically when ready."""

    tui: bool = True
    """Use the live status display when the terminal supports it."""

    verbose: bool = False
    """Relay pre-ready and stderr output to the console."""

    page_size: int = 100
    """Default page size for gateway list/read routes."""

    ready_markers: tuple[str, ...] = ("Ready", "Listening")
    """Substrings in the runtime's stdout that signal readiness."""


_settings: EdgeDeckSettings | None = None
_settings_lock = threading.Lock()


def _coerce(value: str) -> Any:
    """Coerce an environment string to bool/int where it looks like one."""
    lowered = value.lower()
    if lowered in ("true", "false", "yes", "no"):
        return lowered in ("true", "yes")
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    return value


def _apply_env_overrides(settings_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply EDGEDECK_<FIELD> environment overrides.

    Sequence fields take a whitespace-separated list:
        EDGEDECK_EMULATOR_COMMAND="bunx wrangler dev"
    """
    known = {f.name for f in fields(EdgeDeckSettings)}
    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue
        name = key[len(_ENV_PREFIX):].lower()
        if name not in known:
            continue
        if isinstance(settings_dict.get(name), (list, tuple)):
            settings_dict[name] = value.split()
        else:
            settings_dict[name] = _coerce(value)
    return settings_dict


def _dict_to_settings(data: dict[str, Any]) -> EdgeDeckSettings:
    known = {f.name for f in fields(EdgeDeckSettings)}
    values = {k: v for k, v in data.items() if k in known}
    for name in ("emulator_command", "ready_markers"):
        if name in values:
            raw = values[name]
            values[name] = tuple(raw.split()) if isinstance(raw, str) else tuple(raw)
    return EdgeDeckSettings(**values)


def load_settings(path: str | Path | None = None) -> EdgeDeckSettings:
    """Load settings from file with defaults and env overrides.

    Args:
        path: Optional explicit settings file path.

    Returns:
        Merged EdgeDeckSettings instance.
    """
    global _settings

    settings_dict: dict[str, Any] = asdict(EdgeDeckSettings())

    settings_paths = []
    if path:
        settings_paths.append(Path(path))
    settings_paths.extend([
        Path(".edgedeck/config.yaml"),
        Path.home() / ".edgedeck" / "config.yaml",
    ])

    for settings_path in settings_paths:
        if settings_path.exists():
            try:
                with open(settings_path, encoding="utf-8") as f:
                    file_settings = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Ignoring unreadable settings file %s: %s", settings_path, e)
                continue
            if isinstance(file_settings, dict):
                settings_dict.update(file_settings)
            break  # Use first found file

    settings_dict = _apply_env_overrides(settings_dict)

    _settings = _dict_to_settings(settings_dict)
    return _settings


def get_settings() -> EdgeDeckSettings:
    """Get the current settings, loading if needed.

    Thread-safe with double-check locking.
    """
    global _settings

    if _settings is not None:
        return _settings

    with _settings_lock:
        if _settings is None:
            _settings = load_settings()
        return _settings


def reset_settings() -> None:
    """Reset the global settings (useful for testing)."""
    global _settings
    with _settings_lock:
        _settings = None


def with_overrides(settings: EdgeDeckSettings, **overrides: Any) -> EdgeDeckSettings:
    """Return a copy with the non-None overrides applied (CLI options)."""
    values = {k: v for k, v in overrides.items() if v is not None}
    if not values:
        return settings
    current = {f.name: getattr(settings, f.name) for f in fields(settings)}
    current.update(values)
    return EdgeDeckSettings(**current)


__all__ = [
    "EdgeDeckSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "with_overrides",
]
