"""Helpers shared by the list operations: paging, sorting, text matching."""

from typing import Dict, Optional, Sequence, Tuple

from sqlalchemy import Column
from sqlalchemy.orm import Query

from deptrecords.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


def normalize_paging(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Clamp page/limit to sane values (page >= 1, 1 <= limit <= MAX_PAGE_SIZE)."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else DEFAULT_PAGE_SIZE
    return page, min(limit, MAX_PAGE_SIZE)


def paginate(query: Query, page: int, limit: int) -> Query:
    return query.offset((page - 1) * limit).limit(limit)


def contains_literal(column: Column, value: str):
    """Case-insensitive substring match that treats the value literally.

    LIKE wildcards (% and _) in the value are escaped, and no pattern
    language is involved, so inputs such as "A+B" or "O'Brien" match
    exactly those characters.
    """
    return column.icontains(value, autoescape=True)


def build_order_by(
    sortable: Dict[str, Column],
    sort_field: Optional[str],
    sort_direction: Optional[str],
    default: Sequence,
) -> Sequence:
    """Resolve a caller-supplied sort into ORDER BY clauses.

    Unknown fields fall back to the default ordering. Direction is
    ascending unless ``desc`` is given.
    """
    column = sortable.get(sort_field) if sort_field else None
    if column is None:
        return default
    if (sort_direction or "").lower() == "desc":
        return [column.desc()]
    return [column.asc()]
