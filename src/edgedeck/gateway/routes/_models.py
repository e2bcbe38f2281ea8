"""Shared request models and helpers for gateway routes.

Response bodies are plain dicts; their keys are part of the dashboard's
contract and stay snake_case.

Routes that take a body read it with ``read_json``/``read_model`` after the
binding is resolved, so an unknown binding is a 404 whatever the body holds.
"""

import json
from typing import Any, TypeVar

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, ValidationError

from edgedeck.gateway.resolver import BindingResolver

M = TypeVar("M", bound=BaseModel)


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QueryRequest(_Body):
    sql: str | None = None
    params: list[Any] = []


class KVPutRequest(_Body):
    value: Any = None
    metadata: Any = None
    expiration_ttl: int | None = None


def resolver(request: Request) -> BindingResolver:
    return request.app.state.resolver


def page_size(request: Request) -> int:
    return request.app.state.page_size


async def read_json(request: Request) -> Any:
    """Decoded JSON body; None when the body is empty."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON body: {e}") from e


async def read_model(request: Request, model: type[M]) -> M:
    """Validate the JSON body against ``model``. An empty body is ``{}``."""
    payload = await read_json(request)
    try:
        return model.model_validate({} if payload is None else payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e


def field(result: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a handle result, attribute or mapping style."""
    if isinstance(result, dict):
        return result.get(name, default)
    return getattr(result, name, default)
