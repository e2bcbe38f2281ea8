"""LocalRuntime: file-backed bindings under one persistence root."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from edgedeck.errors import BindingNotFound
from edgedeck.project.types import ProjectConfig
from edgedeck.runtime.local.actors import LocalActorNamespace
from edgedeck.runtime.local.database import LocalDatabase
from edgedeck.runtime.local.kv import LocalKVNamespace
from edgedeck.runtime.local.objects import LocalBucket
from edgedeck.runtime.local.queues import LocalQueue
from edgedeck.runtime.local.service import ServiceBinding

logger = logging.getLogger(__name__)


class LocalRuntime:
    """Runtime implementation backed by sqlite files and plain directories.

    Layout under ``persist_dir``:

        d1/<database_id or database_name>.sqlite
        kv/<namespace id or binding>.sqlite
        r2/<bucket_name>/
        queues/<queue>.jsonl

    Args:
        config: Config declaring the bindings to instantiate
        persist_dir: Persistence root shared with the user's runtime
        services: Service binding identifier -> base URL. Declared services
            without a URL here are not instantiated.
    """

    def __init__(
        self,
        config: ProjectConfig,
        persist_dir: str | Path,
        *,
        services: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.persist_dir = Path(persist_dir)
        self._service_urls = dict(services or {})
        self._databases: dict[str, LocalDatabase] = {}
        self._namespaces: dict[str, LocalKVNamespace] = {}
        self._buckets: dict[str, LocalBucket] = {}
        self._actors: dict[str, LocalActorNamespace] = {}
        self._queues: dict[str, LocalQueue] = {}
        self._services: dict[str, ServiceBinding] = {}
        self._started = False

    async def start(self) -> None:
        """Open every declared binding. Calling twice is a no-op."""
        if self._started:
            return
        root = self.persist_dir
        for db in self.config.d1_databases:
            self._databases[db.binding] = LocalDatabase(
                root / "d1" / f"{db.database_id or db.database_name}.sqlite"
            )
        for ns in self.config.kv_namespaces:
            self._namespaces[ns.binding] = LocalKVNamespace(
                root / "kv" / f"{ns.id or ns.binding}.sqlite"
            )
        for bucket in self.config.r2_buckets:
            self._buckets[bucket.binding] = LocalBucket(root / "r2" / bucket.bucket_name)
        for actor in self.config.durable_objects.bindings:
            self._actors[actor.name] = LocalActorNamespace(
                actor.name, actor.class_name, actor.script_name
            )
        for producer in self.config.queues.producers:
            self._queues[producer.binding] = LocalQueue(
                root / "queues" / f"{producer.queue}.jsonl", producer.queue
            )
        for service in self.config.services:
            url = self._service_urls.get(service.binding)
            if url:
                self._services[service.binding] = ServiceBinding(service.binding, url)
            else:
                logger.debug("No URL for service binding %s; skipped", service.binding)

        self._started = True
        logger.debug(
            "Local runtime started: %d database(s), %d namespace(s), %d bucket(s), "
            "%d actor namespace(s), %d queue(s), %d service(s)",
            len(self._databases), len(self._namespaces), len(self._buckets),
            len(self._actors), len(self._queues), len(self._services),
        )

    async def dispose(self) -> None:
        """Close every handle. The runtime can be started again afterwards."""
        for handle in (
            *self._databases.values(),
            *self._namespaces.values(),
            *self._buckets.values(),
            *self._actors.values(),
            *self._queues.values(),
        ):
            handle.close()
        for service in self._services.values():
            await service.aclose()
        for registry in (
            self._databases, self._namespaces, self._buckets,
            self._actors, self._queues, self._services,
        ):
            registry.clear()
        self._started = False

    @property
    def env(self) -> Mapping[str, Any]:
        """Bindings and vars by identifier, as the application would see them."""
        env: dict[str, Any] = dict(self.config.vars)
        for registry in (
            self._databases, self._namespaces, self._buckets,
            self._actors, self._queues, self._services,
        ):
            env.update(registry)
        return env

    def get_binding(self, name: str) -> Any | None:
        return self.env.get(name)

    def get_database(self, name: str) -> LocalDatabase:
        return _lookup(self._databases, "D1", name)

    def get_kv_namespace(self, name: str) -> LocalKVNamespace:
        return _lookup(self._namespaces, "KV", name)

    def get_object_store(self, name: str) -> LocalBucket:
        return _lookup(self._buckets, "R2", name)

    def get_actor_namespace(self, name: str) -> LocalActorNamespace:
        return _lookup(self._actors, "Durable Object", name)

    def get_queue_producer(self, name: str) -> LocalQueue:
        return _lookup(self._queues, "Queue", name)

    def get_service(self, name: str) -> ServiceBinding:
        return _lookup(self._services, "Service", name)


def _lookup(registry: Mapping[str, Any], kind: str, name: str) -> Any:
    try:
        return registry[name]
    except KeyError:
        raise BindingNotFound(kind, name) from None
