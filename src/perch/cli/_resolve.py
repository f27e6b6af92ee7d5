"""Runtime import resolution — resolves ``"module:attribute"`` strings to Runtime instances.

Shared utility used by ``perch routes`` and ``perch check`` to locate a
perch Runtime from a user-supplied import string.
"""

import asyncio
import importlib

from perch.runtime import Runtime


def resolve_runtime(import_string: str) -> Runtime:
    """Resolve an import string to a perch Runtime instance.

    Accepts ``"module:attribute"`` format. When the attribute portion
    is omitted, defaults to ``"runtime"`` (e.g. ``"myapp"`` resolves to
    ``myapp.runtime``).

    Supports factory functions: if the resolved object is callable and
    not a Runtime instance, it will be called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a perch ``Runtime`` or callable.
    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "runtime"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, Runtime):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, Runtime):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a perch.Runtime instance"
        raise TypeError(msg)

    return obj


def load_table(runtime: Runtime, identifier: str | None) -> None:
    """Load the route table *identifier* into *runtime*, if given."""
    if identifier is not None:
        asyncio.run(runtime.load_routes(identifier))
