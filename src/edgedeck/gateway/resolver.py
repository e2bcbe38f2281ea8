"""Binding resolution: manifest + runtime -> typed handle.

A request names a binding by identifier. It resolves only if

1. the manifest declares that identifier for the requested kind, and
2. the runtime's accessor for that kind returns a handle whose
   classified capability matches.

Anything else is BindingNotFound (404), never a 500.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

from fastapi import HTTPException

from edgedeck.errors import BindingNotFound, EdgeDeckError, OperationFailed
from edgedeck.manifest import BindingManifest
from edgedeck.runtime.classifier import Capability, classify
from edgedeck.runtime.protocol import Runtime

logger = logging.getLogger(__name__)

BindingKind = Literal["d1", "kv", "r2", "do", "queue"]

# Actor namespaces expose no classifiable surface; any handle is accepted.
EXPECTED_CAPABILITY: dict[str, Capability | None] = {
    "d1": Capability.DATABASE,
    "kv": Capability.KEY_VALUE,
    "r2": Capability.OBJECT_STORE,
    "queue": Capability.QUEUE,
    "do": None,
}

# The Runtime disambiguates identifiers by kind; each kind has its own accessor.
ACCESSORS: dict[str, str] = {
    "d1": "get_database",
    "kv": "get_kv_namespace",
    "r2": "get_object_store",
    "do": "get_actor_namespace",
    "queue": "get_queue_producer",
}

KIND_LABELS: dict[str, str] = {
    "d1": "D1",
    "kv": "KV",
    "r2": "R2",
    "queue": "Queue",
    "do": "Durable Object",
}


class BindingResolver:
    """Resolves binding identifiers against a manifest and a runtime.

    Classification results are memoized per handle for the resolver's
    lifetime (one gateway process).
    """

    def __init__(self, runtime: Runtime, manifest: BindingManifest) -> None:
        self.runtime = runtime
        self.manifest = manifest
        self._capabilities: dict[int, tuple[Any, Capability]] = {}

    def declared(self, kind: BindingKind) -> tuple[str, ...]:
        """Identifiers the manifest declares for ``kind``."""
        m = self.manifest
        match kind:
            case "d1":
                return tuple(e.binding for e in m.d1)
            case "kv":
                return tuple(e.binding for e in m.kv)
            case "r2":
                return tuple(e.binding for e in m.r2)
            case "do":
                return tuple(e.binding for e in m.do)
            case "queue":
                return tuple(p.binding for p in m.queues.producers)
        return ()

    def capability(self, handle: Any) -> Capability:
        cached = self._capabilities.get(id(handle))
        # Keep the handle alive alongside its id so the id is never reused
        if cached is not None and cached[0] is handle:
            return cached[1]
        capability = classify(handle)
        self._capabilities[id(handle)] = (handle, capability)
        return capability

    def resolve(self, kind: BindingKind, binding: str) -> Any:
        """Return the live handle for ``binding`` or raise BindingNotFound."""
        if binding not in self.declared(kind):
            raise BindingNotFound(KIND_LABELS[kind], binding)

        accessor = getattr(self.runtime, ACCESSORS[kind])
        try:
            handle = accessor(binding)
        except BindingNotFound:
            handle = None
        if handle is None:
            logger.debug("Runtime has no %s handle for declared binding %s", kind, binding)
            raise BindingNotFound(KIND_LABELS[kind], binding)

        expected = EXPECTED_CAPABILITY[kind]
        if expected is not None and self.capability(handle) is not expected:
            logger.debug(
                "Binding %s classified as %s, expected %s",
                binding, self.capability(handle).value, expected.value,
            )
            raise BindingNotFound(KIND_LABELS[kind], binding)
        return handle


@contextmanager
def backing_call(operation: str) -> Iterator[None]:
    """Surface any failure from a backing resource as OperationFailed.

    edgedeck and HTTP errors pass through untouched; nothing is retried.
    """
    try:
        yield
    except (EdgeDeckError, HTTPException):
        raise
    except Exception as e:
        logger.debug("%s failed: %s", operation, e)
        raise OperationFailed(str(e) or type(e).__name__, cause=e) from e
