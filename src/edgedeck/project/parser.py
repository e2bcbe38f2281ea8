"""Project config discovery and parsing.

Search order (first match wins, checked in each directory from the start
path up to the filesystem root):

1. wrangler.json
2. wrangler.jsonc
3. wrangler.toml
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from edgedeck.errors import ConfigNotFound, ConfigParseError
from edgedeck.project.types import ProjectConfig

logger = logging.getLogger(__name__)

CONFIG_FILES: tuple[str, ...] = ("wrangler.json", "wrangler.jsonc", "wrangler.toml")


def find_config(start: Path | None = None) -> Path | None:
    """Find the nearest project config at or above ``start``.

    Args:
        start: Directory (or file inside a directory) to start from. Defaults to cwd.

    Returns:
        Path to the config file, or None if none exists up to the root.
    """
    current = (start or Path.cwd()).resolve()
    if current.is_file():
        current = current.parent

    for directory in (current, *current.parents):
        for filename in CONFIG_FILES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def parse(path: str | Path | None = None) -> ProjectConfig:
    """Parse a project config into a validated ProjectConfig.

    Args:
        path: Config file, or a directory to search from. Defaults to cwd.

    Returns:
        Parsed config with ``config_path`` set.

    Raises:
        ConfigNotFound: If no config file exists at or above the path
        ConfigParseError: If the file is malformed or violates the schema
    """
    target = Path(path) if path is not None else Path.cwd()

    if target.is_dir():
        found = find_config(target)
        if found is None:
            raise ConfigNotFound(CONFIG_FILES, start=str(target))
        config_path = found
    elif target.is_file():
        config_path = target.resolve()
    else:
        raise ConfigNotFound((str(target),), start=str(target))

    logger.debug("Parsing project config %s", config_path)
    data = _load_document(config_path)
    config = _validate(data, config_path)
    _check_unique_bindings(config, config_path)
    return config.model_copy(update={"config_path": config_path})


def _load_document(config_path: Path) -> dict[str, Any]:
    """Read the file into a plain dict according to its extension."""
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigParseError(str(config_path), "<root>", str(e), cause=e) from e

    try:
        if config_path.suffix == ".toml":
            data = tomllib.loads(text)
        elif config_path.suffix == ".jsonc":
            data = json.loads(strip_jsonc(text))
        else:
            data = json.loads(text)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigParseError(str(config_path), "<root>", str(e), cause=e) from e

    if not isinstance(data, dict):
        raise ConfigParseError(str(config_path), "<root>", "expected a table/object at top level")
    return data


def _validate(data: dict[str, Any], config_path: Path) -> ProjectConfig:
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise ConfigParseError(str(config_path), field, first["msg"], cause=e) from e


def _check_unique_bindings(config: ProjectConfig, config_path: Path) -> None:
    """Binding identifiers are unique within a kind (they may repeat across kinds)."""
    collections = {
        "d1_databases": [db.binding for db in config.d1_databases],
        "kv_namespaces": [ns.binding for ns in config.kv_namespaces],
        "r2_buckets": [b.binding for b in config.r2_buckets],
        "durable_objects.bindings": [d.name for d in config.durable_objects.bindings],
        "queues.producers": [p.binding for p in config.queues.producers],
        "services": [s.binding for s in config.services],
    }
    for collection, identifiers in collections.items():
        seen: set[str] = set()
        for index, identifier in enumerate(identifiers):
            if identifier in seen:
                raise ConfigParseError(
                    str(config_path),
                    f"{collection}.{index}",
                    f"duplicate binding '{identifier}'",
                )
            seen.add(identifier)


def strip_jsonc(text: str) -> str:
    """Remove // and /* */ comments, then trailing commas, outside of strings."""
    return _strip_trailing_commas(_strip_comments(text))


def _strip_comments(text: str) -> str:
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False

    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            in_string = ch != '"'
            i += 1
        elif ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1

    return "".join(out)


def _strip_trailing_commas(text: str) -> str:
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False

    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            in_string = ch != '"'
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch == ",":
            rest = text[i + 1:].lstrip()
            if not rest.startswith(("]", "}")):
                out.append(ch)
        else:
            out.append(ch)
        i += 1

    return "".join(out)
