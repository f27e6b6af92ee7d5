"""Resource loader: views, layouts, models, scripts, styles, and JSON.

Views and models are cached as single-flight tasks: the first call for a
key creates the task and stores it before anything is awaited, and every
later call for that key (in flight or settled) awaits the same task. A
failed task is dropped from its cache so the next call retries, while
every waiter that already holds it sees the same error.

Callers receive ``asyncio.shield``-ed awaitables, so one waiter being
cancelled never cancels the shared load.

The view cache is bounded. Entries are kept in an ``OrderedDict`` in
recency order (a cache hit moves the key to the end); registering a new
entry evicts from the front until the size is back within ``max_views``.
An evicted view is removed from the document as soon as it has loaded.

The page header and footer are layouts: one single-flight task per
path in a separate cache, and one ``<header>``/``<footer>`` in
``<body>`` at a time. Loading a new path for a layout replaces the
element in the document and drops the old path from the cache.

Scripts, styles, and JSON are not cached here: scripts and styles are
deduplicated by the tags already present in ``<head>``, JSON is fetched
fresh on every call.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urljoin

from perch._internal.invoke import invoke
from perch._internal.types import InsertedCallback
from perch.dom import Document, Element, parse_fragment
from perch.errors import ConfigurationError, ModuleLoadError, PerchError
from perch.fetch import HttpFetcher
from perch.modules import ModuleLoader, instantiate

logger = logging.getLogger("perch.loader")

DEFAULT_MAX_VIEWS = 10


class ResourceLoader:
    """Async fetch/cache facade for everything a controller depends on.

    Knows nothing about routing or controllers. The runtime passes in
    the pieces it needs: the document, a fetcher, a module loader, the
    services handle models are constructed with, a callable returning
    the current location, and a callback that refreshes the link
    registry after a view is inserted.
    """

    __slots__ = (
        "_container_tag",
        "_document",
        "_fetcher",
        "_layouts",
        "_location",
        "_max_views",
        "_models",
        "_modules",
        "_on_links_changed",
        "_services",
        "_views",
    )

    def __init__(
        self,
        document: Document,
        fetcher: HttpFetcher,
        modules: ModuleLoader,
        *,
        services: Any = None,
        max_views: int = DEFAULT_MAX_VIEWS,
        container_tag: str = "main",
        location: Callable[[], str] | None = None,
        on_links_changed: Callable[[], None] | None = None,
    ) -> None:
        if max_views < 1:
            msg = f"max_views must be at least 1, got {max_views}"
            raise ConfigurationError(msg)
        self._document = document
        self._fetcher = fetcher
        self._modules = modules
        self._services = services
        self._max_views = max_views
        self._container_tag = container_tag
        self._location = location or (lambda: "http://localhost/")
        self._on_links_changed = on_links_changed
        self._views: OrderedDict[str, asyncio.Task[Element]] = OrderedDict()
        self._models: dict[str, asyncio.Task[Any]] = {}
        self._layouts: dict[str, asyncio.Task[Element]] = {}

    # -- Introspection --

    @property
    def max_views(self) -> int:
        return self._max_views

    @property
    def cached_views(self) -> tuple[str, ...]:
        """Cached view paths, least recently used first."""
        return tuple(self._views)

    @property
    def cached_models(self) -> tuple[str, ...]:
        return tuple(self._models)

    @property
    def cached_layouts(self) -> tuple[str, ...]:
        """Cached layouts as ``"header:<path>"`` and ``"footer:<path>"``."""
        return tuple(self._layouts)

    @property
    def container(self) -> Element:
        """The element views are inserted under, created on first use."""
        return self._document.ensure_container(self._container_tag)

    def resolve_url(self, path: str) -> str:
        """Resolve *path* against the current location."""
        return urljoin(self._location(), path)

    # -- Views --

    def load_view(
        self,
        path: str,
        on_inserted: InsertedCallback | None = None,
    ) -> Awaitable[Element]:
        """Load the HTML fragment at *path* into the view container.

        The element is inserted hidden, tagged with ``data-view-src``,
        then *on_inserted* is called with it. Concurrent and later calls
        for the same path share one load and resolve to the same element;
        their *on_inserted* is not called.
        """
        task = self._views.get(path)
        if task is not None:
            self._views.move_to_end(path)
            return asyncio.shield(task)

        task = asyncio.create_task(self._fetch_view(path, on_inserted))
        self._cache_view(path, task)
        return asyncio.shield(task)

    async def _fetch_view(self, path: str, on_inserted: InsertedCallback | None) -> Element:
        try:
            html = await self._fetcher.fetch_text(self.resolve_url(path))
            element = parse_fragment(html, source=path)
            element.attrs["data-view-src"] = path
            element.hidden = True
            self.container.append(element)

            if on_inserted is not None:
                await invoke(on_inserted, element)
            if self._on_links_changed is not None:
                self._on_links_changed()
            return element
        except BaseException:
            self._forget(self._views, path)
            raise

    def _cache_view(self, path: str, task: asyncio.Task[Element]) -> None:
        self._views[path] = task
        while len(self._views) > self._max_views:
            evicted_path, evicted = self._views.popitem(last=False)
            _detach_when_loaded(evicted)
            logger.debug("Evicted view from cache: %s", evicted_path)

    # -- Layouts --

    def load_header(
        self,
        path: str,
        on_inserted: InsertedCallback | None = None,
    ) -> Awaitable[Element]:
        """Load the fragment at *path* as the page ``<header>``.

        A fragment whose root is not a ``<header>`` is wrapped in one. Any
        ``<header>`` directly under ``<body>`` is removed and the new one
        inserted first. Calls for the same path share one load, as with
        ``load_view``.
        """
        return self._load_layout("header", path, on_inserted, first=True)

    def load_footer(
        self,
        path: str,
        on_inserted: InsertedCallback | None = None,
    ) -> Awaitable[Element]:
        """Like ``load_header``, for a ``<footer>`` inserted last in ``<body>``."""
        return self._load_layout("footer", path, on_inserted, first=False)

    def _load_layout(
        self,
        tag: str,
        path: str,
        on_inserted: InsertedCallback | None,
        *,
        first: bool,
    ) -> Awaitable[Element]:
        key = f"{tag}:{path}"
        task = self._layouts.get(key)
        if task is not None:
            return asyncio.shield(task)

        for stale in [k for k in self._layouts if k.startswith(f"{tag}:")]:
            del self._layouts[stale]
        task = asyncio.create_task(self._fetch_layout(tag, key, path, on_inserted, first))
        self._layouts[key] = task
        return asyncio.shield(task)

    async def _fetch_layout(
        self,
        tag: str,
        key: str,
        path: str,
        on_inserted: InsertedCallback | None,
        first: bool,
    ) -> Element:
        try:
            html = await self._fetcher.fetch_text(self.resolve_url(path))
            element = parse_fragment(html, source=path)
            if element.tag != tag:
                wrapper = Element(tag)
                wrapper.append(element)
                element = wrapper

            # Another path for this layout was requested meanwhile; it wins
            if self._layouts.get(key) is not asyncio.current_task():
                logger.debug("Superseded %s not inserted: %s", tag, path)
                return element

            body = self._document.body
            for existing in [child for child in body.children if child.tag == tag]:
                existing.remove()
            if first:
                body.prepend(element)
            else:
                body.append(element)

            if on_inserted is not None:
                await invoke(on_inserted, element)
            if self._on_links_changed is not None:
                self._on_links_changed()
            return element
        except BaseException:
            self._forget(self._layouts, key)
            raise

    # -- Models --

    def load_model(self, path: str) -> Awaitable[Any]:
        """Load and instantiate the model module named *path*, once.

        A class or function export is called with the services handle;
        any other export is used as the instance.
        """
        task = self._models.get(path)
        if task is None:
            task = asyncio.create_task(self._create_model(path))
            self._models[path] = task
        return asyncio.shield(task)

    async def _create_model(self, path: str) -> Any:
        try:
            export = await self._modules.load(path)
            try:
                return await instantiate(export, self._services)
            except PerchError:
                raise
            except Exception as exc:
                raise ModuleLoadError(path=path, detail=f"instantiation failed: {exc!r}") from exc
        except BaseException:
            self._forget(self._models, path)
            raise

    # -- Scripts and styles --

    async def load_script(self, path: str) -> None:
        """Add a ``<script src>`` for *path* to ``<head>`` unless present."""
        url = self.resolve_url(path)
        if self._document.head.find("script", {"src": url}) is not None:
            return
        tag = self._document.head.append(Element("script", {"src": url, "async": None}))
        await self._confirm(tag, url)

    async def load_style(self, path: str) -> None:
        """Add a ``<link rel="stylesheet">`` for *path* to ``<head>`` unless present."""
        url = self.resolve_url(path)
        if self._document.head.find("link", {"rel": "stylesheet", "href": url}) is not None:
            return
        tag = self._document.head.append(Element("link", {"rel": "stylesheet", "href": url}))
        await self._confirm(tag, url)

    async def _confirm(self, tag: Element, url: str) -> None:
        # The tag counts as loaded once its resource is retrievable
        try:
            await self._fetcher.fetch_text(url)
        except BaseException:
            tag.remove()
            raise

    # -- JSON --

    async def load_json(self, path: str) -> Any:
        """Fetch and decode the JSON document at *path*. Never cached."""
        return await self._fetcher.fetch_json(self.resolve_url(path))

    # -- Helpers --

    @staticmethod
    def _forget(cache: dict[str, asyncio.Task[Any]], key: str) -> None:
        """Drop *key* if it still maps to the running task."""
        if cache.get(key) is asyncio.current_task():
            del cache[key]


def _detach_when_loaded(task: asyncio.Task[Element]) -> None:
    """Remove the task's element from the document once it has one."""

    def detach(done: asyncio.Task[Element]) -> None:
        if done.cancelled() or done.exception() is not None:
            return
        done.result().remove()

    if task.done():
        detach(task)
    else:
        task.add_done_callback(detach)
