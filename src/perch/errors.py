"""Perch exception hierarchy.

Shared across the loader, router, and runtime so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when runtime configuration or a route table is invalid.

    Typically raised at construction time or by ``Runtime.load_routes()``.
    """


@dataclass(frozen=True, slots=True)
class ResourceError(PerchError):
    """A resource could not be loaded.

    Raised by the ``ResourceLoader``. The cache entry for *path* is
    cleared before this reaches any waiter, so a later call retries.
    """

    path: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.path}: {self.detail}"
        return self.path


@dataclass(frozen=True, slots=True)
class NetworkError(ResourceError):
    """Retrieval failed: transport error or non-success status."""

    status: int | None = None

    def __str__(self) -> str:
        prefix = f"{self.status} " if self.status is not None else ""
        if self.detail:
            return f"{prefix}{self.path}: {self.detail}"
        return f"{prefix}{self.path}"


class ParseError(ResourceError):
    """Fetched content could not be turned into an element or value."""


class ModuleLoadError(ResourceError):
    """A controller or model module could not be loaded or instantiated."""


class LifecycleHookError(PerchError):
    """A controller lifecycle hook or route method raised.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, controller: str, hook: str, detail: str = "") -> None:
        self.controller = controller
        self.hook = hook
        self.detail = detail
        message = f"{controller}.{hook}() failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MethodNotFound(PerchError):  # noqa: N818
    """A route names a method its controller does not define.

    Reported, not raised, by the runtime: the navigation completes
    without running a route body.
    """

    def __init__(self, controller: str, method: str) -> None:
        self.controller = controller
        self.method = method
        super().__init__(f"Method {method!r} not found in controller {controller!r}")


class RouteNotFound(PerchError):  # noqa: N818
    """No registered pattern matches the URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"No route matches {url!r}")
