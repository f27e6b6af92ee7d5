"""Module loading — identifiers resolved to controller and model exports.

Controllers and models are named by string identifiers in route tables
and ``ctx.model()`` calls. A ``ModuleLoader`` turns an identifier into
the module's export; ``instantiate`` turns an export into the instance
the runtime uses.

Two loaders are provided:

- ``ModuleRegistry``: identifiers registered at startup, either with
  the export itself or with a lazy (sync or async) factory.
- ``ImportModuleLoader``: ``"package.module:attribute"`` import strings.

A registry can fall back to another loader for unknown identifiers::

    modules = ModuleRegistry(fallback=ImportModuleLoader())
    modules.register("home", HomeController)
"""

import importlib
import inspect
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from perch._internal.invoke import invoke
from perch.errors import ModuleLoadError


@runtime_checkable
class ModuleLoader(Protocol):
    """Resolves an identifier to a module export."""

    async def load(self, identifier: str) -> Any: ...


class ImportModuleLoader:
    """Loads exports from import strings.

    ``"app.controllers.home:HomeController"`` imports
    ``app.controllers.home`` and returns its ``HomeController``. Without
    the ``:attribute`` suffix the module's ``default`` attribute is
    returned when present, else the module itself.
    """

    __slots__ = ()

    async def load(self, identifier: str) -> Any:
        module_path, _, attr_name = identifier.partition(":")
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ModuleLoadError(path=identifier, detail=str(exc)) from exc
        except Exception as exc:
            msg = f"import of {module_path!r} failed: {exc!r}"
            raise ModuleLoadError(path=identifier, detail=msg) from exc

        if attr_name:
            try:
                return getattr(module, attr_name)
            except AttributeError as exc:
                msg = f"module {module_path!r} has no attribute {attr_name!r}"
                raise ModuleLoadError(path=identifier, detail=msg) from exc
        return getattr(module, "default", module)


class ModuleRegistry:
    """Identifier -> export table, filled at startup.

    ``register`` stores an export directly. ``register_lazy`` stores a
    zero-argument factory (sync or async) called on first load; its
    result is not memoized here, the loader caches instances.
    """

    __slots__ = ("_entries", "_fallback")

    def __init__(self, *, fallback: ModuleLoader | None = None) -> None:
        self._entries: dict[str, tuple[bool, Any]] = {}
        self._fallback = fallback

    def register(self, identifier: str, export: Any) -> None:
        self._entries[identifier] = (False, export)

    def register_lazy(self, identifier: str, factory: Callable[[], Any]) -> None:
        self._entries[identifier] = (True, factory)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    @property
    def identifiers(self) -> list[str]:
        return list(self._entries)

    async def load(self, identifier: str) -> Any:
        entry = self._entries.get(identifier)
        if entry is None:
            if self._fallback is not None:
                return await self._fallback.load(identifier)
            raise ModuleLoadError(path=identifier, detail="not registered")

        lazy, value = entry
        if not lazy:
            return value
        try:
            return await invoke(value)
        except ModuleLoadError:
            raise
        except Exception as exc:
            raise ModuleLoadError(path=identifier, detail=f"factory raised {exc!r}") from exc


def is_constructible(export: Any) -> bool:
    """True when *export* is a class or a plain function.

    Instances that merely define ``__call__`` are singletons and are
    used as-is.
    """
    return inspect.isclass(export) or inspect.isroutine(export)


async def instantiate(export: Any, services: Any) -> Any:
    """Return the instance for *export*.

    Classes and functions are called with *services* as the sole
    argument (an awaitable result is awaited); any other value is
    returned unchanged.
    """
    if not is_constructible(export):
        return export
    return await invoke(export, services)
