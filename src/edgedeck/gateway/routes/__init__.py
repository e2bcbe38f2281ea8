"""Route modules for the binding gateway.

One APIRouter per binding kind:
- bindings: overview of the manifest, health
- d1: databases (schema, rows, queries, row mutations)
- kv: key-value namespaces
- r2: object stores
- queues: queue producers
- actors: actor namespaces (inspection only)
"""

from edgedeck.gateway.routes.actors import router as actors_router
from edgedeck.gateway.routes.bindings import router as bindings_router
from edgedeck.gateway.routes.d1 import router as d1_router
from edgedeck.gateway.routes.kv import router as kv_router
from edgedeck.gateway.routes.queues import router as queues_router
from edgedeck.gateway.routes.r2 import router as r2_router

__all__ = [
    "actors_router",
    "bindings_router",
    "d1_router",
    "kv_router",
    "queues_router",
    "r2_router",
]
