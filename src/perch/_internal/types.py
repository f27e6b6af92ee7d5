"""Shared type aliases used across perch modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Matcher handler: receives a Match and returns (or awaits to) a result
MatchHandler: TypeAlias = Callable[..., Any]

# Not-found hook: receives the unmatched URL, sync or async
NotFoundHandler: TypeAlias = Callable[[str], Any]

# Called with a freshly inserted view element, sync or async
InsertedCallback: TypeAlias = Callable[..., Any]
