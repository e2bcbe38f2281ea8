"""Queue routes: declared producers/consumers and message sending."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from edgedeck.gateway.resolver import backing_call
from edgedeck.gateway.routes._models import read_json, resolver

router = APIRouter(prefix="/queues", tags=["queues"])


@router.get("/")
async def list_queues(request: Request) -> dict[str, Any]:
    queues = resolver(request).manifest.to_dict()["queues"]
    return {"producers": queues["producers"], "consumers": queues["consumers"]}


@router.post("/{binding}/send")
async def send_message(request: Request, binding: str) -> dict[str, Any]:
    """Enqueue one message.

    A JSON body must be ``{"message": ..., "content_type"?: ...}``; any other
    body is sent as raw text.
    """
    queue = resolver(request).resolve("queue", binding)
    if request.headers.get("content-type", "").startswith("application/json"):
        payload = await read_json(request)
        if not isinstance(payload, dict) or "message" not in payload:
            raise HTTPException(status_code=400, detail="message is required")
        message, content_type = payload["message"], payload.get("content_type")
    else:
        raw = await request.body()
        message, content_type = raw.decode("utf-8", errors="replace"), "text"

    with backing_call("send message"):
        await queue.send(message, content_type=content_type)
    return {"success": True}
