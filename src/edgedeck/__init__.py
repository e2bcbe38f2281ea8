"""edgedeck: local dev front-end for edge applications.

Discovers the bindings an application declares, runs a companion gateway
next to the application's local runtime, and serves a uniform JSON API over
every binding for a browser dashboard.

Example:
    >>> from edgedeck import parse, discover
    >>> manifest = discover(parse("wrangler.toml"))
    >>> [e.binding for e in manifest.d1]
    ['DB']
"""

__version__ = "0.1.0"

from edgedeck.errors import (
    BindingNotFound,
    CompileFailed,
    ConfigNotFound,
    ConfigParseError,
    EdgeDeckError,
    ErrorCode,
    OperationFailed,
    SubprocessExit,
)
from edgedeck.manifest import BindingManifest, discover, summarize
from edgedeck.project import ProjectConfig, find_config, parse
from edgedeck.shadow import ShadowResult, generate

__all__ = [
    "BindingManifest",
    "BindingNotFound",
    "CompileFailed",
    "ConfigNotFound",
    "ConfigParseError",
    "EdgeDeckError",
    "ErrorCode",
    "OperationFailed",
    "ProjectConfig",
    "ShadowResult",
    "SubprocessExit",
    "__version__",
    "discover",
    "find_config",
    "generate",
    "parse",
    "summarize",
]
