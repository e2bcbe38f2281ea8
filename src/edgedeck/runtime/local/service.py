"""Service binding: an HTTP handle to another local application."""

import logging
from collections.abc import Mapping

import httpx

logger = logging.getLogger(__name__)


class ServiceBinding:
    """Forwards requests to ``base_url`` with a shared httpx client."""

    def __init__(self, binding: str, base_url: str, *, timeout: float = 30.0) -> None:
        self.binding = binding
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def fetch(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        logger.debug("%s %s%s via %s", method, self.base_url, path, self.binding)
        return await self._client.request(
            method,
            path,
            headers=headers,
            params=params,
            content=content,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
