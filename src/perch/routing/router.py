"""Trie-based pattern matching.

Patterns use ``:name`` or ``{name}`` for parameters, ``{name:int}`` for
typed parameters, and ``*`` or ``{name:path}`` for a trailing catch-all.
"""

import re
from dataclasses import dataclass, field

from perch.errors import ConfigurationError
from perch.routing.params import CONVERTERS, compile_converter
from perch.routing.route import PathSegment, Route, RouteMatch

# Name given to the parameter captured by a bare ``*``
WILDCARD_PARAM = "wildcard"


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route pattern into segments.

    Examples::

        "/articles"            -> [PathSegment("articles")]
        "/articles/:id"        -> [PathSegment("articles"), PathSegment(":id", is_param=True, ...)]
        "/articles/{id:int}"   -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/*"             -> [..., PathSegment("*", is_param=True, param_type="path")]
    """
    segments: list[PathSegment] = []
    parts = [part for part in path.strip("/").split("/") if part]
    for index, part in enumerate(parts):
        if part.startswith("<") and part.endswith(">"):
            msg = f"Invalid route pattern {path!r}: use :param or {{param}}, not <param>."
            raise ConfigurationError(msg)

        if part == "*":
            segment = PathSegment(
                value=part, is_param=True, param_name=WILDCARD_PARAM, param_type="path"
            )
        elif part.startswith(":") and len(part) > 1:
            segment = PathSegment(value=part, is_param=True, param_name=part[1:])
        elif part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name, param_type = inner, "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown converter {param_type!r} in route pattern {path!r}"
                raise ConfigurationError(msg)
            segment = PathSegment(
                value=part, is_param=True, param_name=param_name, param_type=param_type
            )
        else:
            segment = PathSegment(value=part)

        if segment.param_type == "path" and index != len(parts) - 1:
            msg = f"Catch-all segment must be last in route pattern {path!r}"
            raise ConfigurationError(msg)
        segments.append(segment)
    return segments


@dataclass(slots=True)
class _TrieNode:
    """A node in the route trie."""

    # Static segment children: "articles" -> node
    children: dict[str, "_TrieNode"] = field(default_factory=dict)
    # Parameter children keyed by (name, type), tried in registration order
    param_children: dict[tuple[str, str], "_ParamEdge"] = field(default_factory=dict)
    # Catch-all consuming the rest of the path
    catch_all: "_CatchAllEdge | None" = None
    # Route terminating at this node
    route: Route | None = None


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all edge; consumes remaining path."""

    param_name: str
    route: Route


class Router:
    """Pattern table with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/articles/:id", handler))
        match = router.match("/articles/42")
        match.path_params  # {"id": "42"}

    Adding a route whose pattern is already registered replaces it.
    """

    __slots__ = ("_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._routes: dict[str, Route] = {}

    def add(self, route: Route) -> None:
        """Add (or replace) a route."""
        segments = parse_path(route.pattern)
        node = self._root

        for seg in segments:
            if seg.param_type == "path":
                node.catch_all = _CatchAllEdge(
                    param_name=seg.param_name or WILDCARD_PARAM, route=route
                )
                self._routes[route.pattern] = route
                return

            if seg.is_param:
                key = (seg.param_name or "", seg.param_type)
                edge = node.param_children.get(key)
                if edge is None:
                    edge = _ParamEdge(
                        param_name=key[0],
                        regex=compile_converter(seg.param_type),
                        node=_TrieNode(),
                    )
                    node.param_children[key] = edge
                node = edge.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        node.route = route
        self._routes[route.pattern] = route

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes in registration order."""
        return list(self._routes.values())

    def match(self, path: str) -> RouteMatch | None:
        """Match a URL path against registered patterns.

        Static segments win over parameters, parameters over catch-alls.
        Returns ``None`` when nothing matches.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        return self._match_node(self._root, parts, 0, {})

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> RouteMatch | None:
        """Recursively match path parts against the trie."""
        if index == len(parts):
            if node.route is not None:
                return RouteMatch(route=node.route, path_params=params)
            return None

        part = parts[index]

        # 1. Static child (exact match)
        child = node.children.get(part)
        if child is not None:
            result = self._match_node(child, parts, index + 1, params)
            if result is not None:
                return result

        # 2. Parameter children
        for edge in node.param_children.values():
            if edge.regex.match(part):
                new_params = {**params, edge.param_name: part}
                result = self._match_node(edge.node, parts, index + 1, new_params)
                if result is not None:
                    return result

        # 3. Catch-all
        if node.catch_all is not None:
            remaining = "/".join(parts[index:])
            return RouteMatch(
                route=node.catch_all.route,
                path_params={**params, node.catch_all.param_name: remaining},
            )

        return None
