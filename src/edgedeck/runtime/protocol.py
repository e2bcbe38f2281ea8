"""Runtime contract and binding capability protocols.

The gateway and orchestrator depend only on these interfaces, never on a
concrete emulator. A Runtime instantiates bindings and hands out live
handles by binding identifier; the handles stay owned by the Runtime.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DatabaseLike(Protocol):
    """Can prepare and run a query."""

    def prepare(self, sql: str) -> Any: ...


@runtime_checkable
class KeyValueLike(Protocol):
    """Key-value namespace surface."""

    async def get(self, key: str) -> Any: ...

    async def put(self, key: str, value: Any) -> Any: ...

    async def list(self, **options: Any) -> Any: ...


@runtime_checkable
class ObjectStoreLike(Protocol):
    """Object-store surface: the key-value surface plus ``head``."""

    async def get(self, key: str) -> Any: ...

    async def put(self, key: str, value: Any) -> Any: ...

    async def list(self, **options: Any) -> Any: ...

    async def head(self, key: str) -> Any: ...


@runtime_checkable
class QueueLike(Protocol):
    """Queue producer surface."""

    async def send(self, message: Any) -> Any: ...

    async def send_batch(self, messages: Any) -> Any: ...


class Runtime(Protocol):
    """The local-emulation engine as seen by edgedeck.

    (a) ``start`` brings the configured bindings up;
    (b) per-identifier accessors return live handles of unspecified type;
    (c) ``dispose`` shuts everything down.
    """

    async def start(self) -> None: ...

    async def dispose(self) -> None: ...

    @property
    def env(self) -> Mapping[str, Any]:
        """All bindings by identifier, as the application would see them."""
        ...

    def get_binding(self, name: str) -> Any | None: ...

    def get_database(self, name: str) -> Any: ...

    def get_kv_namespace(self, name: str) -> Any: ...

    def get_object_store(self, name: str) -> Any: ...

    def get_actor_namespace(self, name: str) -> Any: ...

    def get_queue_producer(self, name: str) -> Any: ...

    def get_service(self, name: str) -> Any: ...
