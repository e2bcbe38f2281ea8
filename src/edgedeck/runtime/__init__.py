"""Runtime contract, capability classification and the local runtime."""

from edgedeck.runtime.classifier import Capability, classify, conforms
from edgedeck.runtime.protocol import (
    DatabaseLike,
    KeyValueLike,
    ObjectStoreLike,
    QueueLike,
    Runtime,
)

__all__ = [
    "Capability",
    "DatabaseLike",
    "KeyValueLike",
    "ObjectStoreLike",
    "QueueLike",
    "Runtime",
    "classify",
    "conforms",
]
