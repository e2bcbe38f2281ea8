"""Key-value namespace routes."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from edgedeck.gateway.pagination import parse_page
from edgedeck.gateway.resolver import backing_call
from edgedeck.gateway.routes._models import KVPutRequest, field, page_size, read_model, resolver

router = APIRouter(prefix="/kv", tags=["kv"])


def _key_dict(key: Any) -> dict[str, Any]:
    return {
        "name": field(key, "name"),
        "size": field(key, "size"),
        "expiration": field(key, "expiration"),
        "metadata": field(key, "metadata"),
    }


@router.get("/")
async def list_namespaces(request: Request) -> dict[str, Any]:
    return {
        "namespaces": [
            {"binding": e.binding, "id": e.id} for e in resolver(request).manifest.kv
        ]
    }


@router.get("/{binding}/keys")
async def list_keys(
    request: Request,
    binding: str,
    prefix: str = "",
    limit: str | None = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    """Keys in name order; pass the returned cursor to get the next page."""
    kv = resolver(request).resolve("kv", binding)
    page = parse_page(limit, cursor=cursor, page_size=page_size(request))
    with backing_call("list keys"):
        result = await kv.list(prefix=prefix, limit=page.limit, cursor=page.cursor)
    return {
        "keys": [_key_dict(k) for k in field(result, "keys", [])],
        "list_complete": bool(field(result, "list_complete", True)),
        "cursor": field(result, "cursor"),
    }


@router.get("/{binding}/keys/{key:path}")
async def get_key(request: Request, binding: str, key: str) -> dict[str, Any]:
    kv = resolver(request).resolve("kv", binding)
    with backing_call("get key"):
        value, metadata = await kv.get_with_metadata(key)
    if value is None:
        raise HTTPException(status_code=404, detail=f"Key '{key}' not found")
    return {"key": key, "value": value, "metadata": metadata}


@router.put("/{binding}/keys/{key:path}")
async def put_key(request: Request, binding: str, key: str) -> dict[str, Any]:
    kv = resolver(request).resolve("kv", binding)
    body = await read_model(request, KVPutRequest)
    if body.value is None:
        raise HTTPException(status_code=400, detail="value is required")
    with backing_call("put key"):
        await kv.put(
            key,
            body.value,
            metadata=body.metadata,
            expiration_ttl=body.expiration_ttl,
        )
    return {"success": True, "key": key}


@router.delete("/{binding}/keys/{key:path}")
async def delete_key(request: Request, binding: str, key: str) -> dict[str, Any]:
    kv = resolver(request).resolve("kv", binding)
    with backing_call("delete key"):
        await kv.delete(key)
    return {"success": True, "key": key}
