"""Perch runtime — navigation and controller lifecycle.

The ``Runtime`` owns the URL matcher, the resource loader, the
controller cache, and the active-controller pointer. It is also the
services handle: controllers and models are constructed with it, and
``ExecutionContext`` methods pass through to it.

Each route match runs one navigation, strictly in order::

    IDLE -> RESOLVING -> CONTROLLER_LOADING (uncached only)
         -> CONTEXT_BUILDING -> ENTERING -> EXECUTING -> IDLE

1. ``on_leave()`` of the active controller, awaited.
2. The controller task: cached per identifier before loading starts,
   so racing navigations share one load. A fresh load instantiates the
   export, awaits everything ``required(ctx)`` returns together, then
   ``on_load(ctx)``. A failed load is dropped from the cache.
3. A fresh ``ExecutionContext`` from the match.
4. The controller becomes active.
5. ``on_enter(ctx)``.
6. The route method. A missing method is reported as ``MethodNotFound``
   and the navigation still completes.

Any failure is logged with the route pattern and ends that navigation
where it stands; nothing already done is rolled back, nothing retries.
Navigations are serialized by default, so the next one's ``on_leave``
starts only after the previous one settled; with
``serialize_navigations=False`` they may interleave.

A hook or route method that calls ``navigate``, ``back``, ``run`` or
``load_routes`` on the runtime cannot wait for the navigation it is part
of, so with serialization on those calls schedule their work to run
after it instead.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from collections.abc import Callable, Coroutine, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urljoin

import httpx

from perch._internal.invoke import invoke
from perch._internal.types import InsertedCallback, NotFoundHandler
from perch.api import ApiAdapter, DefaultApiAdapter
from perch.config import RuntimeConfig
from perch.context import ExecutionContext
from perch.controller import ControllerState, LifecycleHooks, route_method
from perch.dom import Document
from perch.errors import (
    ConfigurationError,
    LifecycleHookError,
    MethodNotFound,
    ModuleLoadError,
    PerchError,
    RouteNotFound,
)
from perch.fetch import HttpFetcher
from perch.loader import ResourceLoader
from perch.modules import ImportModuleLoader, ModuleLoader, ModuleRegistry, instantiate
from perch.routing.matcher import UrlMatcher
from perch.routing.route import Match, RouteDefinition

logger = logging.getLogger("perch.runtime")

# True inside a dispatched navigation, including tasks it creates.
_navigating: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "perch_navigating", default=False
)


class NavigationPhase(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CONTROLLER_LOADING = "controller_loading"
    CONTEXT_BUILDING = "context_building"
    ENTERING = "entering"
    EXECUTING = "executing"


@dataclass(frozen=True, slots=True)
class NavigationOutcome:
    """How one navigation ended.

    ``completed`` is True when every step ran (a missing route method
    still completes, with ``error`` set to ``MethodNotFound``).
    """

    url: str
    pattern: str | None = None
    controller: str | None = None
    method: str | None = None
    completed: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.completed and self.error is None


@dataclass(frozen=True, slots=True)
class _LoadedController:
    identifier: str
    instance: Any
    hooks: LifecycleHooks


def _log_not_found(url: str) -> None:
    logger.warning("404 Not Found: no route matches %r", url)


class Runtime:
    """The perch runtime.

    Usage::

        runtime = Runtime(RuntimeConfig(base_url="https://example.com/"))

        @runtime.register("articles")
        class ArticleController(Controller):
            async def show(self, ctx):
                await ctx.view("article.html")

        runtime.add_route("/articles/:id", "articles", "show")
        await runtime.run()
        await runtime.navigate("/articles/42")
    """

    __slots__ = (
        "_active",
        "_api_adapter",
        "_background",
        "_controllers",
        "_document",
        "_in_flight",
        "_loader",
        "_lock",
        "_matcher",
        "_model_paths",
        "_modules",
        "_named_models",
        "_not_found_hook",
        "_phase",
        "_routes",
        "_running",
        "_states",
        "config",
    )

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        modules: ModuleLoader | None = None,
        document: Document | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        api_adapter: ApiAdapter | None = None,
    ) -> None:
        self.config: RuntimeConfig = config or RuntimeConfig()
        self._modules: ModuleLoader = modules or ModuleRegistry(fallback=ImportModuleLoader())
        self._document = document or Document()
        self._api_adapter: ApiAdapter = api_adapter or DefaultApiAdapter()

        self._matcher = UrlMatcher(
            self.config.root,
            document=self._document,
            link_attribute=self.config.link_attribute,
        )
        self._matcher.not_found(self._handle_not_found)
        self._not_found_hook: NotFoundHandler = _log_not_found

        self._loader = ResourceLoader(
            self._document,
            HttpFetcher(transport=transport, timeout=self.config.fetch_timeout),
            self._modules,
            services=self,
            max_views=self.config.max_views,
            container_tag=self.config.container_tag,
            location=self._location,
            on_links_changed=self.update_page_links,
        )

        self._routes: dict[str, RouteDefinition] = {}
        self._controllers: dict[str, asyncio.Task[_LoadedController]] = {}
        self._states: dict[str, ControllerState] = {}
        self._active: _LoadedController | None = None
        self._phase = NavigationPhase.IDLE
        self._in_flight = 0
        self._lock: asyncio.Lock | None = (
            asyncio.Lock() if self.config.serialize_navigations else None
        )
        self._background: set[asyncio.Task[Any]] = set()
        self._named_models: dict[str, Any] = {}
        self._model_paths: dict[str, str] = {}
        self._running = False

    # -- Introspection --

    @property
    def document(self) -> Document:
        return self._document

    @property
    def loader(self) -> ResourceLoader:
        return self._loader

    @property
    def matcher(self) -> UrlMatcher:
        return self._matcher

    @property
    def modules(self) -> ModuleLoader:
        return self._modules

    @property
    def running(self) -> bool:
        return self._running

    @property
    def phase(self) -> NavigationPhase:
        """The step the current navigation is in.

        With ``serialize_navigations=False`` several navigations may be in
        flight; this is the step the latest one reached, and ``IDLE`` only
        once all of them settled.
        """
        return self._phase

    @property
    def current_url(self) -> str:
        return self._matcher.current_url

    @property
    def routes(self) -> list[RouteDefinition]:
        """Registered routes, one per pattern, in registration order."""
        return list(self._routes.values())

    @property
    def active_controller(self) -> Any:
        """The active controller instance, or ``None``."""
        return self._active.instance if self._active is not None else None

    def controller_state(self, identifier: str) -> ControllerState:
        return self._states.get(identifier, ControllerState.UNINITIALIZED)

    # -- Setup --

    def register(self, identifier: str, export: Any = None) -> Any:
        """Register a controller or model export under *identifier*.

        Usable directly or as a class decorator::

            runtime.register("home", HomeController)

            @runtime.register("articles")
            class ArticleController(Controller): ...

        Requires the module loader to be a ``ModuleRegistry``.
        """
        if not isinstance(self._modules, ModuleRegistry):
            msg = (
                f"register() needs a ModuleRegistry module loader, "
                f"not {type(self._modules).__name__}"
            )
            raise ConfigurationError(msg)
        registry = self._modules

        if export is not None:
            registry.register(identifier, export)
            return export

        def decorator(target: Any) -> Any:
            registry.register(identifier, target)
            return target

        return decorator

    def add_route(self, pattern: str, controller: str, method: str) -> None:
        """Bind *pattern* to ``controller.method``. Re-adding a pattern replaces it."""
        definition = RouteDefinition(path=pattern, controller=controller, method=method)
        if pattern in self._routes:
            logger.debug("Route %r re-registered; replacing previous handler", pattern)
        self._routes[pattern] = definition

        async def handle(match: Match) -> NavigationOutcome:
            return await self._dispatch(definition, match)

        self._matcher.on(pattern, handle)

    async def load_routes(self, identifier: str) -> list[RouteDefinition]:
        """Add every route in the route table exported by *identifier*.

        The export is a sequence of ``RouteDefinition`` objects or
        mappings with ``path``, ``controller``, and ``method`` keys. When
        the runtime is already running the current URL is resolved again;
        called from inside a serialized navigation, that resolve is
        scheduled to run after it.
        """
        try:
            export = await self._modules.load(identifier)
        except ModuleLoadError as exc:
            msg = f"Cannot load route table {identifier!r}: {exc}"
            raise ConfigurationError(msg) from exc

        definitions = _route_table(export, identifier)
        for definition in definitions:
            self.add_route(definition.path, definition.controller, definition.method)
        logger.debug("Loaded %d routes from %s", len(definitions), identifier)

        if self._running:
            if self._reentrant():
                self._spawn(self._matcher.resolve())
            else:
                await self._matcher.resolve()
        return definitions

    def not_found(self, handler: NotFoundHandler) -> NotFoundHandler:
        """Register the hook for unmatched URLs (default: log a warning).

        The hook receives the URL and may be sync or async::

            @runtime.not_found
            async def missing(url):
                await runtime.navigate("/404")
        """
        self._not_found_hook = handler
        return handler

    @property
    def api_adapter(self) -> ApiAdapter:
        return self._api_adapter

    def set_api_adapter(self, adapter: ApiAdapter) -> None:
        """Replace the API adapter. Call before ``run()``."""
        self._api_adapter = adapter

    # -- Named models --

    def register_model(self, name: str, instance: Any) -> None:
        """Register a ready model instance under *name*."""
        if name in self._model_paths:
            logger.warning(
                "Model %r was already registered by path; ignoring instance registration", name
            )
            return
        self._named_models[name] = instance

    def register_model_path(self, name: str, path: str) -> None:
        """Register *name* to be loaded from module *path* on first use."""
        if name in self._named_models:
            logger.warning(
                "Model %r was already registered as an instance; ignoring path registration",
                name,
            )
            return
        self._model_paths[name] = path

    async def get_model(self, name: str) -> Any:
        """Return the model registered as *name*, loading it once if needed."""
        if name in self._named_models:
            return self._named_models[name]
        path = self._model_paths.get(name)
        if path is None:
            raise ModuleLoadError(path=name, detail="model is not registered")
        return await self._loader.load_model(path)

    # -- Running --

    async def run(self) -> NavigationOutcome | None:
        """Resolve the current URL and mark the document ready.

        Idempotent: later calls return ``None`` without doing anything.
        Called from inside a serialized navigation, the resolve is
        scheduled and ``None`` returned.
        """
        if self._running:
            return None
        self._running = True
        if self._reentrant():
            self._spawn(self._matcher.resolve())
            outcome = None
        else:
            outcome = await self._matcher.resolve()
        self._document.body.add_class(self.config.ready_class)
        logger.info("Runtime is running.")
        return outcome

    async def navigate(self, url: str, *, replace: bool = False) -> NavigationOutcome | None:
        """Navigate to *url* and wait for that navigation to settle.

        From inside a serialized navigation (a hook or route method) the
        wait could never end, so the navigation is scheduled as with
        ``schedule_navigation`` and ``None`` is returned.
        """
        if self._reentrant():
            self.schedule_navigation(url, replace=replace)
            return None
        return await self._matcher.navigate(url, replace=replace)

    async def back(self) -> NavigationOutcome | None:
        """Go back one history entry. ``None`` at the first entry.

        Scheduled instead of awaited from inside a serialized navigation.
        """
        if self._reentrant():
            self.schedule_back()
            return None
        return await self._matcher.back()

    def schedule_navigation(self, url: str, *, replace: bool = False) -> asyncio.Task[Any]:
        """Start ``navigate(url)`` in the background and return its task."""
        return self._spawn(self._matcher.navigate(url, replace=replace))

    def schedule_back(self) -> asyncio.Task[Any]:
        return self._spawn(self._matcher.back())

    async def drain(self) -> None:
        """Wait for every scheduled navigation, including ones they schedule."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def update_page_links(self) -> None:
        self._matcher.update_page_links()

    # -- Resource pass-throughs --

    def view(self, path: str, on_inserted: InsertedCallback | None = None) -> Any:
        return self._loader.load_view(path, on_inserted)

    def header(self, path: str, on_inserted: InsertedCallback | None = None) -> Any:
        return self._loader.load_header(path, on_inserted)

    def footer(self, path: str, on_inserted: InsertedCallback | None = None) -> Any:
        return self._loader.load_footer(path, on_inserted)

    def model(self, path: str) -> Any:
        return self._loader.load_model(path)

    def script(self, path: str) -> Any:
        return self._loader.load_script(path)

    def style(self, path: str) -> Any:
        return self._loader.load_style(path)

    def json(self, path: str) -> Any:
        return self._loader.load_json(path)

    # -- Navigation internals --

    def _location(self) -> str:
        return urljoin(self.config.base_url, self._matcher.current_url)

    def _reentrant(self) -> bool:
        return self._lock is not None and _navigating.get()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        # The task runs outside the navigation that spawned it
        context = contextvars.copy_context()
        context.run(_navigating.set, False)
        task = asyncio.create_task(coro, context=context)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _handle_not_found(self, url: str) -> NavigationOutcome:
        try:
            await invoke(self._not_found_hook, url)
        except Exception as exc:
            logger.exception("Not-found hook failed for %r", url)
            return NavigationOutcome(url=url, error=exc)
        return NavigationOutcome(url=url, error=RouteNotFound(url))

    async def _dispatch(self, definition: RouteDefinition, match: Match) -> NavigationOutcome:
        token = _navigating.set(True)
        try:
            if self._lock is None:
                return await self._run_navigation(definition, match)
            async with self._lock:
                return await self._run_navigation(definition, match)
        finally:
            _navigating.reset(token)

    async def _run_navigation(
        self, definition: RouteDefinition, match: Match
    ) -> NavigationOutcome:
        def outcome(*, completed: bool, error: Exception | None = None) -> NavigationOutcome:
            return NavigationOutcome(
                url=match.url,
                pattern=definition.path,
                controller=definition.controller,
                method=definition.method,
                completed=completed,
                error=error,
            )

        self._in_flight += 1
        try:
            self._phase = NavigationPhase.RESOLVING
            await self._leave_active()

            loaded = await self._resolve_controller(definition.controller)

            self._phase = NavigationPhase.CONTEXT_BUILDING
            ctx = ExecutionContext.from_match(self, match)
            self._activate(loaded)

            self._phase = NavigationPhase.ENTERING
            if loaded.hooks.on_enter is not None:
                await _call_hook(loaded.identifier, "on_enter", loaded.hooks.on_enter, ctx)

            self._phase = NavigationPhase.EXECUTING
            method = route_method(loaded.instance, definition.method)
            if method is None:
                missing = MethodNotFound(definition.controller, definition.method)
                logger.error("[%s] %s", definition.path, missing)
                return outcome(completed=True, error=missing)
            await _call_hook(loaded.identifier, definition.method, method, ctx)
        except Exception as exc:
            logger.exception("Error processing route %r", definition.path)
            return outcome(completed=False, error=exc)
        finally:
            self._in_flight -= 1
            if not self._in_flight:
                self._phase = NavigationPhase.IDLE

        return outcome(completed=True)

    async def _leave_active(self) -> None:
        active = self._active
        if active is None:
            return
        if active.hooks.on_leave is not None:
            await _call_hook(active.identifier, "on_leave", active.hooks.on_leave)
        if self._active is active:
            self._active = None
            self._states[active.identifier] = ControllerState.INACTIVE

    def _activate(self, loaded: _LoadedController) -> None:
        previous = self._active
        if previous is not None and previous is not loaded:
            self._states[previous.identifier] = ControllerState.INACTIVE
        self._active = loaded
        self._states[loaded.identifier] = ControllerState.ACTIVE

    async def _resolve_controller(self, identifier: str) -> _LoadedController:
        task = self._controllers.get(identifier)
        if task is None:
            self._phase = NavigationPhase.CONTROLLER_LOADING
            task = asyncio.create_task(self._load_controller(identifier))
            self._controllers[identifier] = task
            self._states[identifier] = ControllerState.LOADING
        return await asyncio.shield(task)

    async def _load_controller(self, identifier: str) -> _LoadedController:
        try:
            export = await self._modules.load(identifier)
            try:
                instance = await instantiate(export, self)
            except PerchError:
                raise
            except Exception as exc:
                msg = f"instantiation failed: {exc!r}"
                raise ModuleLoadError(path=identifier, detail=msg) from exc

            hooks = LifecycleHooks.of(instance)
            if hooks.required is not None:
                ctx = ExecutionContext.bootstrap(self)
                resources = await _call_hook(identifier, "required", hooks.required, ctx)
                try:
                    await asyncio.gather(*(resources or ()))
                except Exception as exc:
                    raise LifecycleHookError(identifier, "required", str(exc)) from exc

            if hooks.on_load is not None:
                await _call_hook(
                    identifier, "on_load", hooks.on_load, ExecutionContext.bootstrap(self)
                )
        except BaseException:
            if self._controllers.get(identifier) is asyncio.current_task():
                del self._controllers[identifier]
                self._states[identifier] = ControllerState.UNINITIALIZED
            logger.error("Failed to load controller: %s", identifier)
            raise

        self._states[identifier] = ControllerState.READY
        return _LoadedController(identifier=identifier, instance=instance, hooks=hooks)


async def _call_hook(controller: str, hook: str, func: Callable[..., Any], *args: Any) -> Any:
    """Call a lifecycle hook or route method, wrapping what it raises."""
    try:
        return await invoke(func, *args)
    except Exception as exc:
        raise LifecycleHookError(controller, hook, str(exc)) from exc


def _route_table(export: Any, identifier: str) -> list[RouteDefinition]:
    """Coerce a route-table export into definitions."""
    if isinstance(export, (str, bytes)) or not isinstance(export, Iterable):
        msg = f"Route table {identifier!r} must be a sequence, got {type(export).__name__}"
        raise ConfigurationError(msg)

    definitions: list[RouteDefinition] = []
    for entry in export:
        if isinstance(entry, RouteDefinition):
            definitions.append(entry)
        elif isinstance(entry, Mapping):
            definitions.append(RouteDefinition.from_mapping(entry))
        else:
            msg = f"Route table {identifier!r} contains {type(entry).__name__}, not a route"
            raise ConfigurationError(msg)
    return definitions
