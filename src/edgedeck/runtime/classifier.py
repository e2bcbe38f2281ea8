"""Capability classification for opaque binding handles.

Binding identity is only known once the manifest is read, and the Runtime
hands back handles of unspecified type. A handle is classified purely by the
callable surface it exposes. Surfaces overlap (an object store is a superset
of a key-value namespace), so checks run from the largest surface down.
"""

from enum import Enum
from typing import Any

from edgedeck.runtime.protocol import DatabaseLike, KeyValueLike, ObjectStoreLike, QueueLike


class Capability(Enum):
    """Closed set of capability tags."""

    DATABASE = "database"
    KEY_VALUE = "key_value"
    OBJECT_STORE = "object_store"
    QUEUE = "queue"
    UNKNOWN = "unknown"


# Most specific first; order matters.
_SURFACES: tuple[tuple[Capability, type], ...] = (
    (Capability.OBJECT_STORE, ObjectStoreLike),
    (Capability.KEY_VALUE, KeyValueLike),
    (Capability.DATABASE, DatabaseLike),
    (Capability.QUEUE, QueueLike),
)


def _surface(protocol: type) -> tuple[str, ...]:
    return tuple(
        name for name, value in vars(protocol).items()
        if not name.startswith("_") and callable(value)
    )


def conforms(handle: Any, protocol: type) -> bool:
    """True when ``handle`` structurally satisfies ``protocol``.

    ``isinstance`` against a runtime-checkable protocol only checks that the
    attributes exist; each one must also be callable here.
    """
    return isinstance(handle, protocol) and all(
        callable(getattr(handle, name, None)) for name in _surface(protocol)
    )


def classify(handle: Any) -> Capability:
    """Classify a handle by the methods it exposes.

    Example:
        >>> classify(runtime.get_binding("BUCKET"))
        <Capability.OBJECT_STORE: 'object_store'>
    """
    if handle is None or isinstance(handle, (str, bytes, int, float, bool)):
        return Capability.UNKNOWN
    for capability, protocol in _SURFACES:
        if conforms(handle, protocol):
            return capability
    return Capability.UNKNOWN
