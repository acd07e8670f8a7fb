"""Output formatters for the CLI.

Each formatter returns a string; the command decides where it goes.
"""

from __future__ import annotations

import json
from typing import Any

import click

from .properties import PropertySchema, PropertyType, decode_property, extract_title, plain_text, schema_options

MAX_COLUMN_WIDTH = 60
SEPARATOR = "━" * 40


def format_json(data: Any) -> str:
    """Full JSON passthrough."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def short_date(timestamp: Any) -> str:
    if not isinstance(timestamp, str):
        return ""
    return timestamp[:10]


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def format_title(icon: str, text: str) -> str:
    return click.style(f"{icon} {text}", bold=True)


def format_subtitle(text: str) -> str:
    return click.style(text, dim=True)


def format_field(key: str, value: Any) -> str:
    return click.style(f"{key + ':':<16}", fg="cyan") + str(value)


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Aligned columns; cells wider than the cap are cut with an ellipsis."""
    if not rows:
        return "No results."

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(widths)]):
            widths[i] = max(widths[i], len(cell))
    widths = [min(w, MAX_COLUMN_WIDTH) for w in widths]

    def line(cells: list[str]) -> str:
        out = []
        for i, cell in enumerate(cells[: len(widths)]):
            if len(cell) > widths[i]:
                cell = cell[: widths[i] - 1] + "…"
            out.append(f"{cell:<{widths[i]}}")
        return "  ".join(out).rstrip()

    lines = [click.style(line(headers), bold=True)]
    lines.append("  ".join("─" * w for w in widths))
    lines.extend(line(row) for row in rows)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Search, pages, databases
# ---------------------------------------------------------------------------

def format_search(results: list[dict]) -> str:
    if not results:
        return "No results found."
    rows = []
    for obj in results:
        obj_type = obj.get("object", "")
        icon = "🗃️" if obj_type == "database" else "📄"
        rows.append([f"{icon} {obj_type}", extract_title(obj), obj.get("id", ""), short_date(obj.get("last_edited_time"))])
    return format_table(["TYPE", "TITLE", "ID", "LAST EDITED"], rows)


def format_object_list(results: list[dict]) -> str:
    """Title / ID / last-edited table for page and database listings."""
    rows = [
        [extract_title(obj), obj.get("id", ""), short_date(obj.get("last_edited_time"))]
        for obj in results
    ]
    return format_table(["TITLE", "ID", "LAST EDITED"], rows)


def format_page_properties(page: dict) -> str:
    lines = [format_title("📄", extract_title(page)), SEPARATOR]
    for name, prop in (page.get("properties") or {}).items():
        if not isinstance(prop, dict):
            continue
        lines.append(format_field(name, f"{decode_property(prop)} ({prop.get('type', '')})"))
    return "\n".join(lines)


def format_database(database: dict) -> str:
    """Database header plus its schema table."""
    lines = [format_title("🗃️", extract_title(database)), SEPARATOR, format_field("ID", database.get("id", ""))]
    if database.get("url"):
        lines.append(format_field("URL", database["url"]))
    lines.append("")

    properties = database.get("properties") or {}
    rows = [
        [name, prop.get("type", ""), schema_options(prop)]
        for name, prop in properties.items()
        if isinstance(prop, dict)
    ]
    if rows:
        lines.append(format_table(["PROPERTY", "TYPE", "OPTIONS"], rows))
    return "\n".join(lines)


def query_columns(schema: PropertySchema) -> list[str]:
    """Schema property names with the title column first."""
    titles = [name for name, prop_type in schema.items() if prop_type == PropertyType.TITLE]
    return titles + [name for name, prop_type in schema.items() if prop_type != PropertyType.TITLE]


def format_query_results(results: list[dict], schema: PropertySchema) -> str:
    if not results:
        return "No results found."
    columns = query_columns(schema)
    rows = []
    for page in results:
        props = page.get("properties") or {}
        rows.append([decode_property(props[name]) if isinstance(props.get(name), dict) else "" for name in columns])
    return format_table(columns, rows)


# ---------------------------------------------------------------------------
# Users, comments, files
# ---------------------------------------------------------------------------

def format_users(results: list[dict]) -> str:
    if not results:
        return "No users found."
    rows = [[u.get("name") or "", u.get("type") or "", u.get("id") or ""] for u in results]
    return format_table(["NAME", "TYPE", "ID"], rows)


def format_user(user: dict) -> str:
    lines = [
        format_title("👤", user.get("name") or ""),
        format_field("ID", user.get("id", "")),
        format_field("Type", user.get("type", "")),
    ]
    if user.get("type") == "person":
        email = (user.get("person") or {}).get("email")
        if email:
            lines.append(format_field("Email", email))
    return "\n".join(lines)


def format_comments(results: list[dict]) -> str:
    if not results:
        return "No comments found."
    lines = []
    for comment in results:
        lines.append(format_field("Comment", plain_text(comment.get("rich_text"))))
        lines.append(format_subtitle(f"  ID: {comment.get('id', '')}  Created: {short_date(comment.get('created_time'))}"))
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def format_file_uploads(results: list[dict]) -> str:
    if not results:
        return "No file uploads found."
    rows = [
        [f.get("name") or f.get("filename") or "", f.get("id", ""), f.get("status", ""), short_date(f.get("created_time"))]
        for f in results
    ]
    return format_table(["NAME", "ID", "STATUS", "CREATED"], rows)
