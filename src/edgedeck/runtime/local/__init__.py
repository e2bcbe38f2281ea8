"""File-backed local bindings for the gateway process."""

from edgedeck.runtime.local.actors import ActorId, LocalActorNamespace
from edgedeck.runtime.local.database import LocalDatabase, PreparedStatement, QueryResult
from edgedeck.runtime.local.kv import KVKey, KVListResult, LocalKVNamespace
from edgedeck.runtime.local.objects import LocalBucket, ObjectBody, ObjectInfo, ObjectListResult
from edgedeck.runtime.local.queues import LocalQueue
from edgedeck.runtime.local.runtime import LocalRuntime
from edgedeck.runtime.local.service import ServiceBinding

__all__ = [
    "ActorId",
    "KVKey",
    "KVListResult",
    "LocalActorNamespace",
    "LocalBucket",
    "LocalDatabase",
    "LocalKVNamespace",
    "LocalQueue",
    "LocalRuntime",
    "ObjectBody",
    "ObjectInfo",
    "ObjectListResult",
    "PreparedStatement",
    "QueryResult",
    "ServiceBinding",
]
