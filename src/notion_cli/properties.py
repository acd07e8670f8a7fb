"""Typed property values: encode plain strings for the API, decode them for display.

A property value on the wire always nests its payload under a key equal to
its type tag, e.g. ``{"select": {"name": "Done"}}``. Encoding is driven by
the type declared in the database schema; decoding by the ``type`` field the
API sends back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
import math
from typing import Any

from .errors import InvalidPropertyFormat, UnknownProperty

# Property name -> declared type tag.
PropertySchema = dict[str, str]

TRUE_TOKENS = frozenset({"true", "1", "yes"})


class PropertyType(StrEnum):
    """Property type tags understood by the codec."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    NUMBER = "number"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    STATUS = "status"
    DATE = "date"
    CHECKBOX = "checkbox"
    URL = "url"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    PEOPLE = "people"
    RELATION = "relation"
    FORMULA = "formula"
    ROLLUP = "rollup"
    CREATED_TIME = "created_time"
    LAST_EDITED_TIME = "last_edited_time"
    CREATED_BY = "created_by"
    LAST_EDITED_BY = "last_edited_by"


_KNOWN_TYPES = frozenset(member.value for member in PropertyType)


@dataclass(frozen=True)
class PropertyValue:
    """A typed property value."""

    type: str
    payload: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {self.type: self.payload}

    @classmethod
    def from_dict(cls, prop: Mapping[str, Any]) -> PropertyValue:
        prop_type = prop.get("type")
        if not isinstance(prop_type, str):
            return cls("", None)
        return cls(prop_type, prop.get(prop_type))


def parse_bool(raw: str) -> bool:
    return raw in TRUE_TOKENS


def parse_number(raw: str) -> float | None:
    """Parse a finite float, or None when the text is not a number.

    Surrounding whitespace and digit-group underscores are rejected.
    """
    if raw != raw.strip() or "_" in raw:
        return None
    try:
        number = float(raw)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


# ---------------------------------------------------------------------------
# Rich text
# ---------------------------------------------------------------------------

def rich_text(text: str) -> list[dict[str, Any]]:
    """A single rich-text run carrying ``text``."""
    return [{"text": {"content": text}}]


def plain_text(runs: Any) -> str:
    """Concatenate the text of a rich-text run list."""
    if not isinstance(runs, list):
        return ""
    parts = []
    for run in runs:
        if not isinstance(run, dict):
            continue
        text = run.get("plain_text")
        if text is None:
            text = (run.get("text") or {}).get("content")
        if isinstance(text, str):
            parts.append(text)
    return "".join(parts)


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

def _encode_text(prop_type: str, raw: str) -> PropertyValue:
    return PropertyValue(prop_type, rich_text(raw))


def _encode_number(prop_type: str, raw: str) -> PropertyValue:
    number = parse_number(raw)
    return PropertyValue(prop_type, raw if number is None else number)


def _encode_named(prop_type: str, raw: str) -> PropertyValue:
    return PropertyValue(prop_type, {"name": raw})


def _encode_multi_select(prop_type: str, raw: str) -> PropertyValue:
    names = [segment.strip() for segment in raw.split(",")]
    return PropertyValue(prop_type, [{"name": name} for name in names if name])


def _encode_date(prop_type: str, raw: str) -> PropertyValue:
    return PropertyValue(prop_type, {"start": raw})


def _encode_checkbox(prop_type: str, raw: str) -> PropertyValue:
    return PropertyValue(prop_type, parse_bool(raw))


def _encode_verbatim(prop_type: str, raw: str) -> PropertyValue:
    return PropertyValue(prop_type, raw)


_ENCODERS = {
    PropertyType.TITLE: _encode_text,
    PropertyType.RICH_TEXT: _encode_text,
    PropertyType.NUMBER: _encode_number,
    PropertyType.SELECT: _encode_named,
    PropertyType.STATUS: _encode_named,
    PropertyType.MULTI_SELECT: _encode_multi_select,
    PropertyType.DATE: _encode_date,
    PropertyType.CHECKBOX: _encode_checkbox,
    PropertyType.URL: _encode_verbatim,
    PropertyType.EMAIL: _encode_verbatim,
    PropertyType.PHONE_NUMBER: _encode_verbatim,
}


def encode(prop_type: str, raw: str) -> PropertyValue:
    """Build a typed property value from a plain string.

    Types without a string form fall back to rich text; this never raises.
    """
    encoder = _ENCODERS.get(prop_type)
    if encoder is None:
        return _encode_text(PropertyType.RICH_TEXT.value, raw)
    return encoder(prop_type, raw)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

def _format_number(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _name_of(obj: Any, key: str = "name") -> str:
    if isinstance(obj, dict):
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return ""


def _decode_date(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    start = payload.get("start") or ""
    end = payload.get("end") or ""
    if end:
        return f"{start} → {end}"
    return start


def _decode_people(payload: Any) -> str:
    if not isinstance(payload, list):
        return ""
    names = [_name_of(person) or _name_of(person, "id") for person in payload]
    return ", ".join(name for name in names if name)


def _decode_relation(payload: Any) -> str:
    if not isinstance(payload, list):
        return ""
    return ", ".join(_name_of(item, "id") for item in payload if _name_of(item, "id"))


def _decode_computed(payload: Any, plain: bool) -> str:
    """Decode a formula or rollup result by its inner type."""
    if not isinstance(payload, dict):
        return ""
    inner_type = payload.get("type")
    if not isinstance(inner_type, str):
        return ""
    inner = payload.get(inner_type)
    if inner is None:
        return ""
    if inner_type == "string":
        return str(inner)
    if inner_type == "boolean":
        return "true" if inner else "false"
    if inner_type == "array" and isinstance(inner, list):
        parts = [decode(PropertyValue.from_dict(item), plain=plain) for item in inner if isinstance(item, dict)]
        return ", ".join(part for part in parts if part)
    if inner_type in _KNOWN_TYPES:
        return decode(PropertyValue(inner_type, inner), plain=plain)
    return str(inner)


def decode(value: PropertyValue, *, plain: bool = False) -> str:
    """Render a property value as a display string.

    Missing or malformed payloads decode to an empty string. With ``plain``
    set, checkboxes come back as ``true``/``false`` instead of glyphs.
    """
    prop_type, payload = value.type, value.payload
    if payload is None:
        return ""

    if prop_type in (PropertyType.TITLE, PropertyType.RICH_TEXT):
        return plain_text(payload)
    if prop_type == PropertyType.NUMBER:
        return _format_number(payload)
    if prop_type in (PropertyType.SELECT, PropertyType.STATUS):
        return _name_of(payload)
    if prop_type == PropertyType.MULTI_SELECT:
        if not isinstance(payload, list):
            return ""
        return ", ".join(_name_of(option) for option in payload)
    if prop_type == PropertyType.DATE:
        return _decode_date(payload)
    if prop_type == PropertyType.CHECKBOX:
        if not isinstance(payload, bool):
            return ""
        if plain:
            return "true" if payload else "false"
        return "✓" if payload else "✗"
    if prop_type in (
        PropertyType.URL,
        PropertyType.EMAIL,
        PropertyType.PHONE_NUMBER,
        PropertyType.CREATED_TIME,
        PropertyType.LAST_EDITED_TIME,
    ):
        return payload if isinstance(payload, str) else ""
    if prop_type == PropertyType.PEOPLE:
        return _decode_people(payload)
    if prop_type == PropertyType.RELATION:
        return _decode_relation(payload)
    if prop_type in (PropertyType.FORMULA, PropertyType.ROLLUP):
        return _decode_computed(payload, plain)
    if prop_type in (PropertyType.CREATED_BY, PropertyType.LAST_EDITED_BY):
        return _name_of(payload)
    return ""


def decode_property(prop: Mapping[str, Any], *, plain: bool = False) -> str:
    """Decode a raw property object as returned by the API."""
    return decode(PropertyValue.from_dict(prop), plain=plain)


# ---------------------------------------------------------------------------
# Schemas and assignments
# ---------------------------------------------------------------------------

def schema_from_properties(properties: Any) -> PropertySchema:
    """Build a name -> type map from a ``properties`` object."""
    if not isinstance(properties, dict):
        return {}
    schema: PropertySchema = {}
    for name, prop in properties.items():
        if isinstance(prop, dict) and isinstance(prop.get("type"), str):
            schema[name] = prop["type"]
    return schema


def schema_from_database(database: Mapping[str, Any]) -> PropertySchema:
    return schema_from_properties(database.get("properties"))


def title_property(schema: PropertySchema) -> str | None:
    for name, prop_type in schema.items():
        if prop_type == PropertyType.TITLE:
            return name
    return None


def schema_options(prop: Mapping[str, Any]) -> str:
    """Comma-joined option names of a select, multi_select or status column."""
    prop_type = prop.get("type")
    if prop_type not in (PropertyType.SELECT, PropertyType.MULTI_SELECT, PropertyType.STATUS):
        return ""
    options = (prop.get(prop_type) or {}).get("options") or []
    return ", ".join(_name_of(option) for option in options if isinstance(option, dict))


def extract_title(obj: Mapping[str, Any]) -> str:
    """Readable title of a page or database object."""
    title = obj.get("title")
    if isinstance(title, list):
        return plain_text(title) or "(untitled)"

    properties = obj.get("properties")
    if isinstance(properties, dict):
        for prop in properties.values():
            if isinstance(prop, dict) and prop.get("type") == PropertyType.TITLE:
                return plain_text(prop.get("title")) or "(untitled)"

    return "(untitled)"


def parse_assignment(argument: str) -> tuple[str, str]:
    """Split ``key=value`` at the first ``=``."""
    key, sep, value = argument.partition("=")
    if not sep:
        raise InvalidPropertyFormat(argument)
    return key, value


def build_properties(
    assignments: Iterable[tuple[str, str]],
    schema: PropertySchema,
    *,
    where: str = "database schema",
) -> dict[str, Any]:
    """Encode ``(name, raw)`` pairs into a ``properties`` request object."""
    properties: dict[str, Any] = {}
    for name, raw in assignments:
        prop_type = schema.get(name)
        if prop_type is None:
            raise UnknownProperty(name, where)
        properties[name] = encode(prop_type, raw).to_dict()
    return properties
