"""HTTP retrieval — the network boundary of the resource loader.

Raw HTTP via httpx. A client is created per request (no shared
mutable state); tests pass an ``httpx.MockTransport`` as *transport*.
"""

import json
from typing import Any

import httpx

from perch.errors import NetworkError, ParseError


class HttpFetcher:
    """Fetches text and JSON, mapping failures onto perch errors.

    Transport failures and non-2xx responses raise ``NetworkError``;
    an undecodable JSON body raises ``ParseError``.
    """

    __slots__ = ("_timeout", "_transport")

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._transport = transport
        self._timeout = timeout

    async def _get(self, url: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise NetworkError(path=url, detail=str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise NetworkError(path=url, detail=response.reason_phrase, status=response.status_code)
        return response

    async def fetch_text(self, url: str) -> str:
        response = await self._get(url)
        return response.text

    async def fetch_json(self, url: str) -> Any:
        response = await self._get(url)
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise ParseError(path=url, detail=f"invalid JSON: {exc.msg}") from exc
