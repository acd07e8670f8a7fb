"""Cursor pagination over list endpoints."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import RemoteAPIError


@dataclass(frozen=True)
class Page:
    """One page of a paginated list response."""

    results: list[Any] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Page:
        results = data.get("results")
        has_more = data.get("has_more") is True
        cursor = data.get("next_cursor")
        return cls(
            results=list(results) if isinstance(results, list) else [],
            has_more=has_more,
            next_cursor=cursor if has_more and isinstance(cursor, str) else None,
        )


def collect_all(
    fetch_page: Callable[[str | None], Page],
    start_cursor: str | None = None,
    stop_early: bool = False,
    into: list[Any] | None = None,
) -> list[Any]:
    """Fetch pages until ``has_more`` is false and return every result in order.

    With ``stop_early`` only the first page is fetched. Errors from
    ``fetch_page`` propagate; pass ``into`` to keep what was gathered before
    the failure. A page that claims more results without a cursor raises
    ``RemoteAPIError`` rather than restarting from the first page.
    """
    results = into if into is not None else []
    cursor = start_cursor or None
    while True:
        page = fetch_page(cursor)
        results.extend(page.results)
        if stop_early or not page.has_more:
            return results
        if page.next_cursor is None:
            raise RemoteAPIError(
                "invalid response: has_more is true but next_cursor is missing",
                code="invalid_response",
            )
        cursor = page.next_cursor
