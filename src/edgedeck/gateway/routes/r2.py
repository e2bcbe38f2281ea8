"""Object-store routes: listing, metadata, raw body download and upload."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from edgedeck.gateway.pagination import parse_page
from edgedeck.gateway.resolver import backing_call
from edgedeck.gateway.routes._models import field, page_size, resolver

router = APIRouter(prefix="/r2", tags=["r2"])


def _object_dict(info: Any) -> dict[str, Any]:
    return {
        "key": field(info, "key"),
        "size": field(info, "size"),
        "uploaded": field(info, "uploaded"),
        "etag": field(info, "etag"),
        "http_metadata": dict(field(info, "http_metadata") or {}),
    }


@router.get("/")
async def list_buckets(request: Request) -> dict[str, Any]:
    return {
        "buckets": [
            {"binding": e.binding, "bucket_name": e.bucket_name}
            for e in resolver(request).manifest.r2
        ]
    }


@router.get("/{binding}/objects")
async def list_objects(
    request: Request,
    binding: str,
    prefix: str = "",
    limit: str | None = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    bucket = resolver(request).resolve("r2", binding)
    page = parse_page(limit, cursor=cursor, page_size=page_size(request))
    with backing_call("list objects"):
        result = await bucket.list(prefix=prefix, limit=page.limit, cursor=page.cursor)
    return {
        "objects": [_object_dict(o) for o in field(result, "objects", [])],
        "truncated": bool(field(result, "truncated", False)),
        "cursor": field(result, "cursor"),
    }


@router.get("/{binding}/meta/{key:path}")
async def get_object_meta(request: Request, binding: str, key: str) -> dict[str, Any]:
    bucket = resolver(request).resolve("r2", binding)
    with backing_call("head object"):
        info = await bucket.head(key)
    if info is None:
        raise HTTPException(status_code=404, detail=f"Object '{key}' not found")
    meta = _object_dict(info)
    meta["custom_metadata"] = dict(field(info, "custom_metadata") or {})
    return meta


@router.get("/{binding}/objects/{key:path}")
async def get_object(request: Request, binding: str, key: str) -> Response:
    """Raw object body with its stored content type."""
    bucket = resolver(request).resolve("r2", binding)
    with backing_call("get object"):
        obj = await bucket.get(key)
    if obj is None:
        raise HTTPException(status_code=404, detail=f"Object '{key}' not found")
    return Response(
        content=obj.body,
        media_type=obj.info.content_type,
        headers={"ETag": obj.info.etag},
    )


@router.put("/{binding}/objects/{key:path}")
async def put_object(request: Request, binding: str, key: str) -> dict[str, Any]:
    bucket = resolver(request).resolve("r2", binding)
    body = await request.body()
    with backing_call("put object"):
        info = await bucket.put(key, body, content_type=request.headers.get("content-type"))
    return {"success": True, **_object_dict(info)}


@router.delete("/{binding}/objects/{key:path}")
async def delete_object(request: Request, binding: str, key: str) -> dict[str, Any]:
    bucket = resolver(request).resolve("r2", binding)
    with backing_call("delete object"):
        await bucket.delete(key)
    return {"success": True, "key": key}
