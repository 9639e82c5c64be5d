"""Paging and field selection helpers shared by the public API."""

from __future__ import annotations

from collections.abc import Container, Mapping, Sequence
from dataclasses import dataclass
from urllib.parse import parse_qsl, quote_plus

DEFAULT_LIMIT = 50


@dataclass
class Links:
    """Pagination links of a list response."""

    first: str
    last: str
    previous: str | None = None
    next: str | None = None


def get_limit(limit: int | None) -> int:
    """The requested page size, or the default."""
    return DEFAULT_LIMIT if limit is None else int(limit)


def get_offset(offset: int | None) -> int:
    """The requested offset, or zero."""
    return 0 if offset is None else int(offset)


def parse_fields(
    query: Mapping[str, Sequence[str]],
    key: str,
    known_fields: Container[str],
    defaults: Sequence[str],
) -> list[str]:
    """Comma-separated field selection under ``key``; raise ValueError on unknown fields."""
    if key not in query:
        return list(defaults)

    result = []
    for value in query[key]:
        for field in value.split(","):
            if field not in known_fields:
                raise ValueError(f"unknown field: {field}")
            result.append(field)
    return result


def create_link(base: str, query_string: str, limit: int, offset: int) -> str:
    """Link to a page: the query string with limit and offset replaced, keys sorted."""
    query: dict[str, list[str]] = {}
    for name, value in parse_qsl(query_string, keep_blank_values=True):
        query.setdefault(name, []).append(value)

    query["limit"] = [str(limit)]
    query["offset"] = [str(offset)]

    encoded = "&".join(
        f"{quote_plus(name)}={quote_plus(value)}"
        for name in sorted(query)
        for value in query[name]
    )
    return f"{base}?{encoded}"


def create_links(base: str, query_string: str, limit: int, offset: int, total: int) -> Links:
    """First, last, previous and next page links for a result of ``total`` items."""
    last_page = max(total - 1, 0) // limit

    links = Links(
        first=create_link(base, query_string, limit, 0),
        last=create_link(base, query_string, limit, last_page * limit),
    )

    if offset > 0:
        links.previous = create_link(base, query_string, limit, max(offset - limit, 0))

    if offset + limit < total:
        links.next = create_link(base, query_string, limit, offset + limit)

    return links