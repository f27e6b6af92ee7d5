"""Route definitions and match results."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from perch.errors import ConfigurationError
from perch.routing.query import QueryParams


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Static:  ``/articles``       (is_param=False)
    Param:   ``/:id`` or ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}``       (is_param=True, param_name="id", param_type="int")
    Rest:    ``/*`` or ``/{rest:path}``  (param_type="path")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """A URL pattern bound to a controller identifier and method name."""

    path: str
    controller: str
    method: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RouteDefinition:
        """Build a definition from a route-table record.

        Accepts ``controller``/``method`` keys, or the long forms
        ``controller_path``/``method_name``.
        """
        path = data.get("path")
        controller = data.get("controller", data.get("controller_path"))
        method = data.get("method", data.get("method_name"))
        missing = [
            name
            for name, value in (("path", path), ("controller", controller), ("method", method))
            if not isinstance(value, str) or not value
        ]
        if missing:
            msg = f"Route record {dict(data)!r} is missing {', '.join(missing)}"
            raise ConfigurationError(msg)
        return cls(path=path, controller=controller, method=method)


@dataclass(frozen=True, slots=True)
class Route:
    """A registered pattern and the handler called when it matches."""

    pattern: str
    handler: Callable[..., Any]


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful trie lookup."""

    route: Route
    path_params: dict[str, str]


@dataclass(frozen=True, slots=True)
class Match:
    """Everything a handler learns about a resolved URL.

    ``url`` is the full URL as navigated (``/articles/42?sort=desc``),
    ``path`` the path part, ``pattern`` the registered pattern
    (``/articles/:id``).
    """

    url: str
    path: str
    pattern: str
    params: Mapping[str, str]
    query: QueryParams
