"""Actor namespace routes (inspection only)."""

from typing import Any

from fastapi import APIRouter, Request

from edgedeck.gateway.resolver import backing_call
from edgedeck.gateway.routes._models import resolver

router = APIRouter(prefix="/do", tags=["do"])


@router.get("/")
async def list_namespaces(request: Request) -> dict[str, Any]:
    return {
        "namespaces": [
            {"binding": e.binding, "class_name": e.class_name, "script_name": e.script_name}
            for e in resolver(request).manifest.do
        ]
    }


@router.get("/{binding}")
async def describe_namespace(request: Request, binding: str) -> dict[str, Any]:
    r = resolver(request)
    r.resolve("do", binding)
    entry = next(e for e in r.manifest.do if e.binding == binding)
    return {"binding": entry.binding, "class_name": entry.class_name, "script_name": entry.script_name}


@router.get("/{binding}/ids/{name}")
async def id_from_name(request: Request, binding: str, name: str) -> dict[str, Any]:
    """Deterministic object id for ``name``."""
    namespace = resolver(request).resolve("do", binding)
    with backing_call("id from name"):
        object_id = namespace.id_from_name(name)
    return {"binding": binding, "name": name, "id": str(object_id)}
