# Overview: Named-clause filter composition and pagination for listing endpoints.

from __future__ import annotations

from math import ceil

from sqlalchemy import and_, or_

from ..config import get_setting
from ..validation import ValidationError, optional_int


class FilterSet:
    """
    Conjunction of named clauses.

    Every clause is registered under a unique name so that two filters can
    never silently overwrite each other (e.g. a text search OR-group and a
    status clause). Re-using a name is a programming error.
    """

    def __init__(self):
        self._clauses: dict[str, object] = {}

    def add(self, name: str, clause) -> "FilterSet":
        if name in self._clauses:
            raise ValueError(f"filter clause {name!r} already set")
        self._clauses[name] = clause
        return self

    def add_any(self, name: str, *clauses) -> "FilterSet":
        """Register a disjunction under one name."""
        if not clauses:
            return self
        return self.add(name, or_(*clauses))

    def names(self) -> list[str]:
        return list(self._clauses)

    def __len__(self) -> int:
        return len(self._clauses)

    def apply(self, query):
        if not self._clauses:
            return query
        return query.filter(and_(*self._clauses.values()))


def parse_pagination(page, limit, *, max_limit: int | None = None) -> tuple[int, int]:
    page_value = optional_int(page, "page")
    if page_value is None:
        page_value = 1
    limit_value = optional_int(limit, "limit")
    if limit_value is None:
        limit_value = get_setting("DEFAULT_PAGE_SIZE", 20)
    if page_value < 1:
        raise ValidationError("page must be >= 1")
    if limit_value < 1:
        raise ValidationError("limit must be >= 1")
    if max_limit is not None:
        limit_value = min(limit_value, max_limit)
    return page_value, limit_value


def pagination_dict(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": ceil(total / limit) if limit else 0,
    }


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, pagination_dict(page, limit, total)


def paginate_list(items: list, page: int, limit: int) -> tuple[list, dict]:
    start = (page - 1) * limit
    return items[start:start + limit], pagination_dict(page, limit, len(items))
