"""Controllers — page-level logic bound to routes.

A controller goes through five phases:

1. ``required(ctx)`` — declare resources; returns awaitables awaited
   together. Once, on first load.
2. ``on_load(ctx)`` — one-time setup after ``required``.
3. ``on_enter(ctx)`` — every time one of its routes is entered.
4. the route method, e.g. ``show(ctx)``.
5. ``on_leave()`` — when a navigation moves away from it.

Subclassing ``Controller`` gives no-op defaults for every hook. Plain
classes and singleton instances work too: ``LifecycleHooks.of()``
detects which hooks an instance offers, once, when it is loaded.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.context import ExecutionContext

# Lifecycle hook names, in the order the runtime calls them
HOOK_NAMES = ("required", "on_load", "on_enter", "on_leave")


class ControllerState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Controller:
    """Base class with no-op lifecycle hooks.

    Instances receive the services handle (the ``Runtime``)::

        class ArticleController(Controller):
            def required(self, ctx):
                return [ctx.view("articles.html"), ctx.style("articles.css")]

            async def show(self, ctx):
                article = await ctx.json(f"/api/articles/{ctx.params['id']}")
                ...
    """

    def __init__(self, services: Any) -> None:
        self.services = services

    def required(self, ctx: ExecutionContext) -> Sequence[Awaitable[Any]]:
        return ()

    async def on_load(self, ctx: ExecutionContext) -> None:
        pass

    async def on_enter(self, ctx: ExecutionContext) -> None:
        pass

    async def on_leave(self) -> None:
        pass


@dataclass(frozen=True, slots=True)
class LifecycleHooks:
    """The lifecycle hooks an instance offers; ``None`` where absent."""

    required: Callable[..., Any] | None = None
    on_load: Callable[..., Any] | None = None
    on_enter: Callable[..., Any] | None = None
    on_leave: Callable[..., Any] | None = None

    @classmethod
    def of(cls, instance: Any) -> LifecycleHooks:
        found: dict[str, Callable[..., Any]] = {}
        for name in HOOK_NAMES:
            hook = getattr(instance, name, None)
            if callable(hook):
                found[name] = hook
        return cls(**found)


def is_route_method_name(name: str) -> bool:
    """Lifecycle hooks and private names are never route methods."""
    return name not in HOOK_NAMES and not name.startswith("_")


def route_method(instance: Any, name: str) -> Callable[..., Any] | None:
    """Return the route method *name* of *instance* (or of a class), or ``None``."""
    if not is_route_method_name(name):
        return None
    method = getattr(instance, name, None)
    return method if callable(method) else None
