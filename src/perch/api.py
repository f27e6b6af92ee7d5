"""API adapters — translate perch data options into backend query parameters.

Models build requests from a ``DataOptions`` value and let the runtime's
adapter decide what the backend actually receives. Swap the adapter
with ``Runtime.set_api_adapter()`` before ``run()``.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class DataOptions:
    """Pagination, sorting, search, and free-form filters for a list request."""

    page: int | None = None
    limit: int | None = None
    order: str | None = None
    desc: bool | None = None
    search: str | None = None
    filter: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ApiAdapter(Protocol):
    """What every backend adapter implements."""

    def transform_data_options(self, options: DataOptions) -> dict[str, Any]:
        """Turn *options* into the backend's query parameters."""
        ...

    def primary_key_field(self) -> str:
        """Name of the primary key field in backend records (``id``, ``idx``, ...)."""
        ...


class DefaultApiAdapter:
    """``page``/``limit``/``order``/``desc``/``search`` query parameters."""

    __slots__ = ()

    def transform_data_options(self, options: DataOptions) -> dict[str, Any]:
        return {
            "page": options.page if options.page is not None else 1,
            "limit": options.limit if options.limit is not None else 30,
            "order": options.order if options.order is not None else "createdAt",
            "desc": options.desc if options.desc is not None else True,
            "search": options.search,
            **options.filter,
        }

    def primary_key_field(self) -> str:
        return "id"


class LegacyApiAdapter:
    """Offset-based backends: ``offset``/``length``/``sort_by``/``sort_order``/``query``."""

    __slots__ = ()

    def transform_data_options(self, options: DataOptions) -> dict[str, Any]:
        page = options.page if options.page is not None else 1
        limit = options.limit if options.limit is not None else 30
        desc = options.desc if options.desc is not None else True
        return {
            "offset": (page - 1) * limit,
            "length": limit,
            "sort_by": options.order if options.order is not None else "created_at",
            "sort_order": "DESC" if desc else "ASC",
            "query": options.search,
            **options.filter,
        }

    def primary_key_field(self) -> str:
        return "item_no"
