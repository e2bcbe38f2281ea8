"""File-backed object store.

Storage location: `<persist>/r2/<bucket>/`

Each object is two files named by the sha256 of its key: the raw body
(``<digest>.blob``) and a JSON sidecar (``<digest>.json``) holding the key,
size, etag, upload time and HTTP metadata. Hashing the key keeps keys with
slashes or reserved characters off the filesystem namespace.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

MAX_LIST_LIMIT = 1000
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    """Object metadata without the body."""

    key: str
    size: int
    etag: str
    uploaded: str
    http_metadata: dict[str, str] = field(default_factory=dict)
    custom_metadata: dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        return self.http_metadata.get("contentType", DEFAULT_CONTENT_TYPE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "size": self.size,
            "etag": self.etag,
            "uploaded": self.uploaded,
            "http_metadata": dict(self.http_metadata),
            "custom_metadata": dict(self.custom_metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectInfo:
        return cls(
            key=data["key"],
            size=data["size"],
            etag=data["etag"],
            uploaded=data["uploaded"],
            http_metadata=dict(data.get("http_metadata") or {}),
            custom_metadata=dict(data.get("custom_metadata") or {}),
        )


@dataclass(frozen=True, slots=True)
class ObjectBody:
    """An object with its body."""

    info: ObjectInfo
    body: bytes

    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass(frozen=True, slots=True)
class ObjectListResult:
    objects: list[ObjectInfo]
    truncated: bool
    cursor: str | None = None


class LocalBucket:
    """Object store rooted at one directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def close(self) -> None:
        """Nothing to release; files are opened per call."""

    async def head(self, key: str) -> ObjectInfo | None:
        sidecar = self._sidecar(key)
        if not sidecar.exists():
            return None
        return ObjectInfo.from_dict(json.loads(sidecar.read_text(encoding="utf-8")))

    async def get(self, key: str) -> ObjectBody | None:
        with self._lock:
            info = await self.head(key)
            if info is None:
                return None
            return ObjectBody(info=info, body=self._blob(key).read_bytes())

    async def put(
        self,
        key: str,
        value: bytes | str,
        *,
        content_type: str | None = None,
        custom_metadata: dict[str, str] | None = None,
    ) -> ObjectInfo:
        if not key:
            raise ValueError("key must not be empty")
        body = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        info = ObjectInfo(
            key=key,
            size=len(body),
            etag=hashlib.md5(body, usedforsecurity=False).hexdigest(),
            uploaded=datetime.now(UTC).isoformat(),
            http_metadata={"contentType": content_type or DEFAULT_CONTENT_TYPE},
            custom_metadata=dict(custom_metadata or {}),
        )
        with self._lock:
            self._blob(key).write_bytes(body)
            self._sidecar(key).write_text(json.dumps(info.to_dict()), encoding="utf-8")
        return info

    async def delete(self, key: str) -> None:
        with self._lock:
            self._blob(key).unlink(missing_ok=True)
            self._sidecar(key).unlink(missing_ok=True)

    async def list(
        self,
        prefix: str = "",
        limit: int = MAX_LIST_LIMIT,
        cursor: str | None = None,
    ) -> ObjectListResult:
        """List objects in key order, starting after ``cursor``."""
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        with self._lock:
            infos = [
                ObjectInfo.from_dict(json.loads(path.read_text(encoding="utf-8")))
                for path in self.root.glob("*.json")
            ]
        matching = sorted(
            (i for i in infos if i.key.startswith(prefix) and (cursor is None or i.key > cursor)),
            key=lambda i: i.key,
        )
        page = matching[:limit]
        truncated = len(matching) > limit
        return ObjectListResult(
            objects=page,
            truncated=truncated,
            cursor=page[-1].key if truncated else None,
        )

    def _digest(self, key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def _blob(self, key: str) -> Path:
        return self.root / f"{self._digest(key)}.blob"

    def _sidecar(self, key: str) -> Path:
        return self.root / f"{self._digest(key)}.json"
