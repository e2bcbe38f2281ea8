"""edgedeck error system.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints shown by the CLI
- Context for debugging

Startup errors (config, compile) are fatal and rendered by the CLI.
Gateway errors are local to a request and rendered as ``{"error": ...}``.
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Configuration errors
        2xxx - Gateway errors
        3xxx - Runtime/process errors
    """

    # 1xxx - Configuration Errors
    CONFIG_NOT_FOUND = 1001
    CONFIG_PARSE_ERROR = 1002

    # 2xxx - Gateway Errors
    BINDING_NOT_FOUND = 2001
    OPERATION_FAILED = 2002

    # 3xxx - Runtime Errors
    COMPILE_FAILED = 3001
    SUBPROCESS_EXIT = 3002

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "config",
            2: "gateway",
            3: "runtime",
        }.get(prefix, "unknown")


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.CONFIG_NOT_FOUND: "Could not find a project config file (looked for: {searched}).",
    ErrorCode.CONFIG_PARSE_ERROR: "Invalid config {path} at '{field}': {detail}",
    ErrorCode.BINDING_NOT_FOUND: "{kind} binding '{binding}' not found",
    ErrorCode.OPERATION_FAILED: "{detail}",
    ErrorCode.COMPILE_FAILED: "Could not bundle entry point {entry}: {detail}",
    ErrorCode.SUBPROCESS_EXIT: "{command} exited with code {exit_code}",
}


RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.CONFIG_NOT_FOUND: [
        "Make sure you're in an edge application project directory",
        "Pass the config path explicitly: edgedeck path/to/wrangler.toml",
    ],
    ErrorCode.CONFIG_PARSE_ERROR: [
        "Fix the field '{field}' in {path}",
    ],
    ErrorCode.COMPILE_FAILED: [
        "Check that 'main' in your config points to an existing file",
    ],
    ErrorCode.SUBPROCESS_EXIT: [
        "Try running '{command}' directly to debug",
    ],
}


class EdgeDeckError(Exception):
    """Base error type for all edgedeck errors.

    Example:
        >>> err = BindingNotFound("D1", "DB")
        >>> print(err)
        [ED-2001] D1 binding 'DB' not found
    """

    code: ErrorCode = ErrorCode.OPERATION_FAILED

    def __init__(
        self,
        code: ErrorCode | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        if code is not None:
            self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            return template

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        formatted = []
        for hint in RECOVERY_HINTS.get(self.code, []):
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def category(self) -> str:
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'ED-1001')."""
        return f"ED-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "recovery_hints": self.recovery_hints,
            "context": self.context,
        }


class ConfigNotFound(EdgeDeckError):
    """No recognized configuration file exists at or above the start path."""

    code = ErrorCode.CONFIG_NOT_FOUND

    def __init__(self, searched: tuple[str, ...] | list[str], start: str = ""):
        self.searched = tuple(searched)
        super().__init__(context={"searched": ", ".join(self.searched), "start": start})


class ConfigParseError(EdgeDeckError):
    """Configuration file exists but is malformed or violates the schema."""

    code = ErrorCode.CONFIG_PARSE_ERROR

    def __init__(self, path: str, field: str, detail: str, cause: Exception | None = None):
        self.field = field
        super().__init__(context={"path": path, "field": field, "detail": detail}, cause=cause)


class BindingNotFound(EdgeDeckError):
    """Binding is missing from the manifest or has no live handle of the expected kind."""

    code = ErrorCode.BINDING_NOT_FOUND

    def __init__(self, kind: str, binding: str):
        self.kind = kind
        self.binding = binding
        super().__init__(context={"kind": kind, "binding": binding})


class OperationFailed(EdgeDeckError):
    """A backing resource rejected an operation; carries the resource's own text."""

    code = ErrorCode.OPERATION_FAILED

    def __init__(self, detail: str, cause: Exception | None = None):
        super().__init__(context={"detail": detail}, cause=cause)

    @property
    def message(self) -> str:
        return str(self.context.get("detail", ""))


class CompileFailed(EdgeDeckError):
    """The application entry point could not be bundled."""

    code = ErrorCode.COMPILE_FAILED

    def __init__(self, entry: str, detail: str):
        super().__init__(context={"entry": entry, "detail": detail})


class SubprocessExit(EdgeDeckError):
    """The runtime subprocess exited with a non-zero code."""

    code = ErrorCode.SUBPROCESS_EXIT

    def __init__(self, command: str, exit_code: int):
        self.exit_code = exit_code
        super().__init__(context={"command": command, "exit_code": exit_code})
