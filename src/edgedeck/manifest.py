"""Binding manifest: the gateway-facing catalogue of an application's bindings.

The manifest is derived once per run from the ProjectConfig, serialized to a
JSON string, and handed to the gateway process through a single environment
slot (EDGEDECK_MANIFEST). It carries only what the gateway needs to render and
query a binding, never credentials.

Example:
    >>> manifest = discover(parse("wrangler.toml"))
    >>> text = manifest.to_json()
    >>> BindingManifest.from_json(text) == manifest
    True
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from edgedeck.project.types import ProjectConfig

logger = logging.getLogger(__name__)

MANIFEST_ENV_VAR = "EDGEDECK_MANIFEST"
"""Environment slot the gateway reads the serialized manifest from."""


@dataclass(frozen=True, slots=True)
class D1Entry:
    binding: str
    database_name: str
    database_id: str = ""


@dataclass(frozen=True, slots=True)
class KVEntry:
    binding: str
    id: str = ""


@dataclass(frozen=True, slots=True)
class R2Entry:
    binding: str
    bucket_name: str


@dataclass(frozen=True, slots=True)
class ActorEntry:
    binding: str
    class_name: str
    script_name: str | None = None


@dataclass(frozen=True, slots=True)
class QueueProducerEntry:
    binding: str
    queue: str


@dataclass(frozen=True, slots=True)
class QueueConsumerEntry:
    """A consumer declaration. Keyed by queue name; it has no binding identifier."""

    queue: str
    max_batch_size: int | None = None
    max_batch_timeout: int | None = None
    max_retries: int | None = None
    dead_letter_queue: str | None = None


@dataclass(frozen=True, slots=True)
class QueuesEntry:
    producers: tuple[QueueProducerEntry, ...] = ()
    consumers: tuple[QueueConsumerEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class BindingManifest:
    """Normalized, read-only view of all bindings.

    Attributes:
        name: Application name (may be empty)
        d1: Database bindings
        kv: Key-value namespace bindings
        r2: Object-store bindings
        do: Actor-namespace bindings
        queues: Queue producers and consumers
        vars: Plain environment variables
    """

    name: str = ""
    d1: tuple[D1Entry, ...] = ()
    kv: tuple[KVEntry, ...] = ()
    r2: tuple[R2Entry, ...] = ()
    do: tuple[ActorEntry, ...] = ()
    queues: QueuesEntry = field(default_factory=QueuesEntry)
    vars: dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """True if no bindings of any kind are declared."""
        return not (
            self.d1 or self.kv or self.r2 or self.do
            or self.queues.producers or self.queues.consumers or self.vars
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict.

        Optional consumer settings that are unset are omitted.
        """
        return {
            "name": self.name,
            "d1": [
                {"binding": e.binding, "database_name": e.database_name, "database_id": e.database_id}
                for e in self.d1
            ],
            "kv": [{"binding": e.binding, "id": e.id} for e in self.kv],
            "r2": [{"binding": e.binding, "bucket_name": e.bucket_name} for e in self.r2],
            "do": [
                {"binding": e.binding, "class_name": e.class_name, "script_name": e.script_name}
                for e in self.do
            ],
            "queues": {
                "producers": [{"binding": p.binding, "queue": p.queue} for p in self.queues.producers],
                "consumers": [
                    {k: v for k, v in _consumer_dict(c).items() if v is not None}
                    for c in self.queues.consumers
                ],
            },
            "vars": dict(self.vars),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BindingManifest:
        """Create a manifest from its dict form. Absent collections become empty."""
        queues = data.get("queues") or {}
        return cls(
            name=data.get("name") or "",
            d1=tuple(
                D1Entry(e["binding"], e.get("database_name", ""), e.get("database_id", ""))
                for e in data.get("d1") or ()
            ),
            kv=tuple(KVEntry(e["binding"], e.get("id", "")) for e in data.get("kv") or ()),
            r2=tuple(R2Entry(e["binding"], e.get("bucket_name", "")) for e in data.get("r2") or ()),
            do=tuple(
                ActorEntry(e["binding"], e.get("class_name", ""), e.get("script_name"))
                for e in data.get("do") or ()
            ),
            queues=QueuesEntry(
                producers=tuple(
                    QueueProducerEntry(p["binding"], p.get("queue", ""))
                    for p in queues.get("producers") or ()
                ),
                consumers=tuple(
                    QueueConsumerEntry(
                        queue=c["queue"],
                        max_batch_size=c.get("max_batch_size"),
                        max_batch_timeout=c.get("max_batch_timeout"),
                        max_retries=c.get("max_retries"),
                        dead_letter_queue=c.get("dead_letter_queue"),
                    )
                    for c in queues.get("consumers") or ()
                ),
            ),
            vars=dict(data.get("vars") or {}),
        )

    def to_json(self) -> str:
        """Serialize to a single compact JSON string (stable key order)."""
        return json.dumps(self.to_dict(), separators=(",", ":"), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> BindingManifest:
        """Parse a manifest serialized with to_json().

        Raises:
            ValueError: If the text is not a manifest object
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("manifest must be a JSON object")
        return cls.from_dict(data)


def _consumer_dict(c: QueueConsumerEntry) -> dict[str, Any]:
    return {
        "queue": c.queue,
        "max_batch_size": c.max_batch_size,
        "max_batch_timeout": c.max_batch_timeout,
        "max_retries": c.max_retries,
        "dead_letter_queue": c.dead_letter_queue,
    }


def discover(config: ProjectConfig) -> BindingManifest:
    """Build the binding manifest for a parsed project config.

    Deterministic and total: an absent collection in the config is an empty
    collection here.
    """
    return BindingManifest(
        name=config.name or "",
        d1=tuple(
            D1Entry(db.binding, db.database_name, db.database_id) for db in config.d1_databases
        ),
        kv=tuple(KVEntry(ns.binding, ns.id) for ns in config.kv_namespaces),
        r2=tuple(R2Entry(b.binding, b.bucket_name) for b in config.r2_buckets),
        do=tuple(
            ActorEntry(d.name, d.class_name, d.script_name)
            for d in config.durable_objects.bindings
        ),
        queues=QueuesEntry(
            producers=tuple(
                QueueProducerEntry(p.binding, p.queue) for p in config.queues.producers
            ),
            consumers=tuple(
                QueueConsumerEntry(
                    queue=c.queue,
                    max_batch_size=c.max_batch_size,
                    max_batch_timeout=c.max_batch_timeout,
                    max_retries=c.max_retries,
                    dead_letter_queue=c.dead_letter_queue,
                )
                for c in config.queues.consumers
            ),
        ),
        vars=dict(config.vars),
    )


def load_manifest(text: str | None) -> BindingManifest:
    """Tolerant manifest reader used at gateway construction.

    An empty, missing or malformed value falls back to an all-empty manifest
    (with a warning) instead of failing startup.
    """
    if not text:
        logger.warning("%s is empty; serving an empty manifest", MANIFEST_ENV_VAR)
        return BindingManifest()
    try:
        return BindingManifest.from_json(text)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Malformed %s (%s); serving an empty manifest", MANIFEST_ENV_VAR, e)
        return BindingManifest()


# ═══════════════════════════════════════════════════════════════
# DIAGNOSTIC SUMMARY
# ═══════════════════════════════════════════════════════════════

BindingType = Literal["D1", "KV", "R2", "DO", "Queue", "Var"]


@dataclass(frozen=True, slots=True)
class BindingInfo:
    """One human-readable summary row: kind, identifier, one distinguishing field."""

    type: BindingType
    name: str
    detail: str


def summarize(manifest: BindingManifest) -> list[BindingInfo]:
    """Summarize every binding for diagnostics. Read-only over the manifest."""
    rows: list[BindingInfo] = []
    rows.extend(BindingInfo("D1", e.binding, e.database_name) for e in manifest.d1)
    rows.extend(BindingInfo("KV", e.binding, e.id) for e in manifest.kv)
    rows.extend(BindingInfo("R2", e.binding, e.bucket_name) for e in manifest.r2)
    rows.extend(BindingInfo("DO", e.binding, e.class_name) for e in manifest.do)
    rows.extend(BindingInfo("Queue", p.binding, p.queue) for p in manifest.queues.producers)
    rows.extend(BindingInfo("Var", name, "") for name in manifest.vars)
    return rows


def format_bindings(manifest: BindingManifest) -> list[str]:
    """Format the summary as indented display lines."""
    lines = []
    for info in summarize(manifest):
        suffix = f" ({info.detail})" if info.detail else ""
        lines.append(f"     {info.type:<5} {info.name}{suffix}")
    consumers = manifest.queues.consumers
    if consumers:
        lines.append(f"     Queue consumers: {', '.join(c.queue for c in consumers)}")
    return lines
