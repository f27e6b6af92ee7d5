"""Query strings of navigated URLs.

``QueryParams`` is the read-only view a controller gets as ``ctx.query``;
``encode_query`` goes the other way for ``ctx.build_url``.
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl, urlencode

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class QueryParams(Mapping[str, str]):
    """Parsed ``?a=1&tag=x&tag=y``, frozen after construction.

    Indexing gives the first value of a key; ``get_list`` gives all of
    them in URL order. Blank values (``?empty=``) are kept.
    """

    __slots__ = ("_first", "_pairs", "_raw")

    _first: dict[str, str]
    _pairs: tuple[tuple[str, str], ...]
    _raw: str

    def __init__(self, query_string: str = "") -> None:
        raw = query_string.removeprefix("?")
        pairs = tuple(parse_qsl(raw, keep_blank_values=True))
        first: dict[str, str] = {}
        for key, value in pairs:
            first.setdefault(key, value)
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_pairs", pairs)
        object.__setattr__(self, "_first", first)

    def __setattr__(self, name: str, value: object) -> None:
        msg = "QueryParams is immutable"
        raise AttributeError(msg)

    def __getitem__(self, key: str) -> str:
        return self._first[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._first)

    def __len__(self) -> int:
        return len(self._first)

    def __repr__(self) -> str:
        return f"QueryParams({self._raw!r})"

    @property
    def raw(self) -> str:
        """The query string as given, without the leading ``?``."""
        return self._raw

    def get_list(self, key: str) -> list[str]:
        return [value for name, value in self._pairs if name == key]

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """First value of *key* as an int; *default* when absent or not a number."""
        try:
            return int(self._first[key])
        except (KeyError, ValueError):
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """``true``, ``1``, ``yes`` and ``on`` (any case) are True; anything else False."""
        if key not in self._first:
            return default
        return self._first[key].lower() in _TRUTHY

    def to_dict(self) -> dict[str, str]:
        return dict(self._first)


def encode_query(params: Mapping[str, object]) -> str:
    """Encode *params* as a query string, skipping ``None`` values.

    Lists and tuples repeat the key once per item; booleans become
    ``true``/``false``.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        items = value if isinstance(value, (list, tuple)) else (value,)
        pairs.extend((key, _stringify(item)) for item in items if item is not None)
    return urlencode(pairs)


def _stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
