"""Append-only queue producer.

Storage location: `<persist>/queues/<queue>.jsonl`

One JSON line per message. Delivery to consumers is the emulator's job;
locally the log is what a developer inspects.
"""

import json
import threading
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

DEFAULT_CONTENT_TYPE = "json"


class LocalQueue:
    """Producer handle for one queue."""

    def __init__(self, path: Path, queue: str) -> None:
        self.path = path
        self.queue = queue
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def close(self) -> None:
        """Nothing to release; the log is opened per write."""

    async def send(self, message: Any, content_type: str | None = None) -> None:
        await self.send_batch([{"body": message, "content_type": content_type}])

    async def send_batch(self, messages: Iterable[dict[str, Any]]) -> None:
        """Append messages given as ``{"body", "content_type"?}`` dicts."""
        now = datetime.now(UTC).isoformat()
        lines = []
        for message in messages:
            lines.append(json.dumps({
                "id": uuid.uuid4().hex,
                "queue": self.queue,
                "timestamp": now,
                "content_type": message.get("content_type") or DEFAULT_CONTENT_TYPE,
                "body": message["body"],
            }))
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")

    def messages(self) -> list[dict[str, Any]]:
        """Everything sent so far, oldest first."""
        if not self.path.exists():
            return []
        with self._lock:
            text = self.path.read_text(encoding="utf-8")
        return [json.loads(line) for line in text.splitlines() if line.strip()]
