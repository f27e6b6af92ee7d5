"""URL matcher — location, history, and pattern dispatch.

The matcher owns the current location. ``navigate()`` moves it and
dispatches to the handler registered for the matching pattern;
``resolve()`` re-dispatches the current location. Handlers receive a
``Match`` and may be sync or async; the matcher awaits them and hands
back whatever they return.

It also keeps the link registry: anchors in the document carrying the
link attribute, collected by ``update_page_links()``.
"""

import logging
from typing import Any
from urllib.parse import unquote, urlsplit

from perch._internal.invoke import invoke
from perch._internal.types import MatchHandler, NotFoundHandler
from perch.dom import Document
from perch.routing.query import QueryParams
from perch.routing.route import Match, Route
from perch.routing.router import Router

logger = logging.getLogger("perch.routing")


def _default_not_found(url: str) -> None:
    logger.warning("404 Not Found: no route matches %r", url)


class UrlMatcher:
    """Maps URL patterns to handlers and tracks the current location.

    Usage::

        matcher = UrlMatcher()
        matcher.on("/articles/:id", show_article)
        await matcher.navigate("/articles/42")
    """

    __slots__ = (
        "_document",
        "_history",
        "_link_attribute",
        "_links",
        "_not_found",
        "_router",
    )

    def __init__(
        self,
        root: str = "/",
        *,
        document: Document | None = None,
        link_attribute: str = "data-link",
    ) -> None:
        self._router = Router()
        self._history: list[str] = [root]
        self._not_found: NotFoundHandler = _default_not_found
        self._document = document
        self._link_attribute = link_attribute
        self._links: list[str] = []

    # -- Registration --

    def on(self, pattern: str, handler: MatchHandler) -> None:
        """Register *handler* for *pattern*, replacing any previous one."""
        self._router.add(Route(pattern=pattern, handler=handler))

    def not_found(self, handler: NotFoundHandler) -> NotFoundHandler:
        """Register the hook called with unmatched URLs. Usable as a decorator."""
        self._not_found = handler
        return handler

    @property
    def routes(self) -> list[Route]:
        return self._router.routes

    # -- Location --

    @property
    def current_url(self) -> str:
        return self._history[-1]

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._history)

    def match(self, url: str) -> tuple[Route, Match] | None:
        """Match *url* without dispatching. ``None`` when unmatched."""
        parts = urlsplit(url)
        path = parts.path or "/"
        result = self._router.match(path)
        if result is None:
            return None
        params = {name: unquote(value) for name, value in result.path_params.items()}
        match = Match(
            url=url,
            path=path,
            pattern=result.route.pattern,
            params=params,
            query=QueryParams(parts.query),
        )
        return result.route, match

    # -- Dispatch --

    async def resolve(self, url: str | None = None) -> Any:
        """Dispatch *url* (default: the current location) to its handler.

        Returns the handler's result, or the not-found hook's result.
        """
        target = url if url is not None else self.current_url
        found = self.match(target)
        if found is None:
            return await invoke(self._not_found, target)
        route, match = found
        return await invoke(route.handler, match)

    async def navigate(self, url: str, *, replace: bool = False) -> Any:
        """Move the location to *url* and dispatch it.

        With ``replace=True`` the current history entry is overwritten
        instead of pushing a new one.
        """
        if replace:
            self._history[-1] = url
        else:
            self._history.append(url)
        return await self.resolve(url)

    async def back(self) -> Any:
        """Return to the previous history entry and dispatch it.

        At the first entry there is nowhere to go; returns ``None``.
        """
        if len(self._history) < 2:
            return None
        self._history.pop()
        return await self.resolve(self.current_url)

    # -- Link registry --

    @property
    def links(self) -> tuple[str, ...]:
        """Hrefs of the anchors found by the last ``update_page_links()``."""
        return tuple(self._links)

    def update_page_links(self) -> None:
        """Rescan the document for navigation anchors."""
        if self._document is None:
            return
        anchors = self._document.find_all("a", {self._link_attribute: None})
        self._links = [href for a in anchors if (href := a.get("href"))]
