"""Execution context — what a controller hook receives.

One ``ExecutionContext`` is built per navigation from the route match,
and a bootstrap variant with empty match data is passed to ``required``
and ``on_load``. Both are frozen. A controller may keep a reference, but
its params and query describe the navigation it was built for; reading
them after that navigation has finished gives stale data.

Resource and navigation methods pass straight through to the services
handle (the ``Runtime``), so controllers rarely need it directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from perch._internal.types import InsertedCallback
from perch.dom import Element
from perch.routing.query import QueryParams, encode_query

if TYPE_CHECKING:
    from perch.api import ApiAdapter
    from perch.routing.route import Match
    from perch.runtime import Runtime

_EMPTY_PARAMS: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Per-navigation match data plus service accessors."""

    services: Runtime
    url: str = ""
    path: str = ""
    pattern: str = ""
    params: Mapping[str, str] = field(default_factory=lambda: _EMPTY_PARAMS)
    query: QueryParams = field(default_factory=QueryParams)

    @classmethod
    def bootstrap(cls, services: Runtime) -> ExecutionContext:
        """Context with no match data, for the loading phases."""
        return cls(services=services)

    @classmethod
    def from_match(cls, services: Runtime, match: Match) -> ExecutionContext:
        return cls(
            services=services,
            url=match.url,
            path=match.path,
            pattern=match.pattern,
            params=MappingProxyType(dict(match.params)),
            query=match.query,
        )

    @property
    def is_bootstrap(self) -> bool:
        return not self.pattern

    # -- Match data --

    def param(self, name: str, default: str | None = None) -> str | None:
        return self.params.get(name, default)

    def query_param(self, name: str, default: str | None = None) -> str | None:
        return self.query.get(name, default)

    @staticmethod
    def build_query_string(params: Mapping[str, object]) -> str:
        """``{"page": 2, "tag": ["a", "b"]}`` -> ``"?page=2&tag=a&tag=b"``.

        ``None`` values are dropped; an empty result gives ``""``.
        """
        encoded = encode_query(params)
        return f"?{encoded}" if encoded else ""

    def build_url(self, path: str, params: Mapping[str, object] | None = None) -> str:
        return f"{path}{self.build_query_string(params or {})}"

    # -- Resources --

    def view(self, path: str, on_inserted: InsertedCallback | None = None) -> Awaitable[Element]:
        return self.services.view(path, on_inserted)

    def header(self, path: str, on_inserted: InsertedCallback | None = None) -> Awaitable[Element]:
        return self.services.header(path, on_inserted)

    def footer(self, path: str, on_inserted: InsertedCallback | None = None) -> Awaitable[Element]:
        return self.services.footer(path, on_inserted)

    def model(self, path: str) -> Awaitable[Any]:
        return self.services.model(path)

    def script(self, path: str) -> Awaitable[None]:
        return self.services.script(path)

    def style(self, path: str) -> Awaitable[None]:
        return self.services.style(path)

    def json(self, path: str) -> Awaitable[Any]:
        return self.services.json(path)

    @property
    def api(self) -> ApiAdapter:
        return self.services.api_adapter

    # -- Navigation --

    def navigate(self, url: str) -> asyncio.Task[Any]:
        """Start a navigation to *url* and return its task.

        With serialized navigations (the default) it starts once the
        running navigation settles, so awaiting the task from inside a
        hook never finishes.
        """
        return self.services.schedule_navigation(url)

    def redirect(self, url: str) -> asyncio.Task[Any]:
        """Like ``navigate``, replacing the current history entry."""
        return self.services.schedule_navigation(url, replace=True)

    def back(self) -> asyncio.Task[Any]:
        return self.services.schedule_back()
