"""In-memory origin served through ``httpx.MockTransport``.

Counts requests per path and can hold responses back until released,
which is what single-flight tests need: start several loads, check
that only one request went out, then let it finish.
"""

import asyncio
import json
from collections import Counter
from collections.abc import Mapping
from typing import Any

import httpx


class StaticSite:
    """A fake origin serving a path -> body map.

    Values may be ``str`` (served as HTML/text), ``dict``/``list``
    (served as JSON), or an ``int`` status code for an empty error
    response. Unknown paths get a 404.
    """

    __test__ = False  # Tell pytest this is not a test class

    __slots__ = ("_files", "_gates", "requests")

    def __init__(self, files: Mapping[str, Any] | None = None) -> None:
        self._files: dict[str, Any] = dict(files or {})
        self._gates: dict[str, asyncio.Event] = {}
        self.requests: Counter[str] = Counter()

    def __setitem__(self, path: str, body: Any) -> None:
        self._files[path] = body

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def hold(self, path: str) -> None:
        """Delay responses for *path* until ``release(path)``."""
        self._gates[path] = asyncio.Event()

    def release(self, path: str) -> None:
        gate = self._gates.pop(path, None)
        if gate is not None:
            gate.set()

    async def requested(self, path: str, count: int = 1) -> None:
        """Yield to the event loop until *path* has been requested *count* times."""
        while self.requests[path] < count:
            await asyncio.sleep(0)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests[path] += 1

        gate = self._gates.get(path)
        if gate is not None:
            await gate.wait()

        if path not in self._files:
            return httpx.Response(404)
        body = self._files[path]
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, (dict, list)):
            return httpx.Response(
                200, content=json.dumps(body), headers={"content-type": "application/json"}
            )
        return httpx.Response(200, text=body)
