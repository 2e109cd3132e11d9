"""Thin httpx wrapper used by every collaborator for upstream calls."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "space-api/1.0"


class UpstreamError(Exception):
    """An upstream answered successfully but the payload reports an error."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class Upstream:
    """
    Issues GET requests with a shared timeout and user agent.

    A transport can be injected (httpx.MockTransport in tests).
    """

    def __init__(self, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        logger.debug("GET %s params=%s", url, _redact(params))
        async with self._client() as client:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> Any:
        response = await self.get(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(response.url.host, "invalid JSON response") from exc


def _redact(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return params
    return {k: ("***" if "key" in k.lower() else v) for k, v in params.items()}
