"""Logging configuration for edgedeck.

Provides centralized logging setup with sensible defaults:
- Default: WARNING level (quiet operation, the console belongs to the runtime output)
- --verbose flag: DEBUG level with full context
- EDGEDECK_DEBUG=true or EDGEDECK_LOG_LEVEL=DEBUG env vars: Override for CI/scripting

Usage:
    from edgedeck.logging import configure_logging
    configure_logging(verbose=args.verbose)

Priority for level resolution (highest to lowest):
    1. Explicit `level` parameter (programmatic override)
    2. EDGEDECK_LOG_LEVEL env var (any level: DEBUG, INFO, WARNING, etc.)
    3. EDGEDECK_DEBUG=true env var (simple boolean)
    4. `verbose=True` parameter (--verbose flag)
    5. WARNING (default)
"""

import logging
import os
import sys

# Format includes module path for tracing issues
_DEBUG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"
_DEFAULT_FORMAT = "%(name)s: %(message)s"

# Noisy libraries we want to quiet even in verbose mode
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncio",
)


def resolve_level(*, verbose: bool = False, level: int | str | None = None) -> int:
    """Resolve the effective log level using the documented priority."""
    if level is not None:
        return _parse_level(level)
    if env_level := os.environ.get("EDGEDECK_LOG_LEVEL"):
        return _parse_level(env_level)
    if os.environ.get("EDGEDECK_DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG
    if verbose:
        return logging.DEBUG
    return logging.WARNING


def configure_logging(
    *,
    verbose: bool = False,
    level: int | str | None = None,
    stream: object = None,
) -> int:
    """Configure logging for an edgedeck process.

    Call this early in the entrypoint (CLI or gateway process) before anything
    else logs.

    Args:
        verbose: Enable DEBUG level with detailed format
        level: Override log level (int or string like "DEBUG", "INFO")
        stream: Output stream (default: stderr)

    Returns:
        The resolved log level.
    """
    resolved_level = resolve_level(verbose=verbose, level=level)
    console_format = _DEBUG_FORMAT if resolved_level <= logging.DEBUG else _DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved_level)
    handler.setFormatter(logging.Formatter(console_format))
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, verbose=%s",
        logging.getLevelName(resolved_level),
        verbose,
    )
    return resolved_level


def _parse_level(level: int | str) -> int:
    """Parse log level from int or string."""
    if isinstance(level, int):
        return level
    numeric = getattr(logging, level.upper(), None)
    if isinstance(numeric, int):
        return numeric
    try:
        return int(level)
    except ValueError:
        return logging.WARNING
