"""Overview of every declared binding."""

from typing import Any

from fastapi import APIRouter, Request

from edgedeck.gateway.routes._models import resolver

router = APIRouter(tags=["bindings"])


@router.get("/bindings")
async def list_bindings(request: Request) -> dict[str, Any]:
    data = resolver(request).manifest.to_dict()
    name = data.pop("name")
    return {"name": name, "bindings": data}


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
