"""Resolve Notion object IDs from raw IDs and web links."""

from __future__ import annotations

import re

_URL_HOSTS = ("notion.so", "notion.site")
_URL_ID_RE = re.compile(r"([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}|[a-f0-9]{32})")
_DASHED_RE = re.compile(r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$")
_PLAIN_RE = re.compile(r"^[a-f0-9]{32}$")


def _is_link(value: str) -> bool:
    return any(host in value for host in _URL_HOSTS)


def format_uuid(raw: str) -> str:
    """Insert dashes into 32 hex characters (8-4-4-4-12)."""
    compact = raw.replace("-", "")
    if len(compact) != 32:
        return raw
    return f"{compact[:8]}-{compact[8:12]}-{compact[12:16]}-{compact[16:20]}-{compact[20:]}"


def resolve_id(value: str) -> str:
    """Normalize a bare ID, dashless hex ID or Notion URL to a dashed UUID.

    Anything unrecognised comes back unchanged so the API can report it.
    """
    value = value.strip()

    if _is_link(value):
        # Only the path carries the ID; view IDs live in the query string.
        path = re.split(r"[?#]", value, maxsplit=1)[0]
        matches = _URL_ID_RE.findall(path)
        if matches:
            return format_uuid(matches[-1])

    if _DASHED_RE.match(value):
        return value

    if _PLAIN_RE.match(value):
        return format_uuid(value)

    return value


def web_url(value: str) -> str:
    """Browser URL for an ID or link."""
    if _is_link(value):
        return value.strip()
    return "https://www.notion.so/" + resolve_id(value).replace("-", "")
