"""
HTTP transport used by the Bitbucket Server client.

The client only needs ``get`` and ``post``; anything exposing the
``TransportResponse`` attributes can stand in for ``httpx`` in tests.
"""

from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from pr_publisher.utils.logging import get_logger

logger = get_logger(__name__)


class TransportResponse(Protocol):
    """Response attributes the client reads."""

    status_code: int
    reason_phrase: str
    text: str

    def json(self) -> Any:
        ...


class HttpTransport(Protocol):
    """Narrow HTTP capability injected into the client."""

    async def get(self, url: str, headers: Mapping[str, str]) -> TransportResponse:
        ...

    async def post(
        self, url: str, headers: Mapping[str, str], body: Dict[str, Any]
    ) -> TransportResponse:
        ...


class HttpxTransport:
    """
    ``httpx.AsyncClient`` backed transport.

    A single attempt per call; the only timeout is the client's own.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get(self, url: str, headers: Mapping[str, str]) -> httpx.Response:
        return await self._client.get(url, headers=dict(headers))

    async def post(
        self, url: str, headers: Mapping[str, str], body: Dict[str, Any]
    ) -> httpx.Response:
        return await self._client.post(url, headers=dict(headers), json=body)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("HTTP transport closed")

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
