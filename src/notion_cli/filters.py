"""Compile ``Field<op>Value`` filters and ``Field:direction`` sorts into query objects."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .errors import NoOperatorFound, UnknownProperty
from .properties import PropertySchema, PropertyType, parse_bool, parse_number

# Scanned in this order; longer tokens must precede the tokens they contain.
OPERATORS: tuple[tuple[str, str], ...] = (
    (">=", "gte"),
    ("<=", "lte"),
    ("!=", "neq"),
    ("!~=", "not_contains"),
    ("~=", "contains"),
    (">", "gt"),
    ("<", "lt"),
    ("=", "eq"),
)

TEXT_OPS = {
    "eq": "equals",
    "neq": "does_not_equal",
    "contains": "contains",
    "not_contains": "does_not_contain",
}

NUMBER_OPS = {
    "eq": "equals",
    "neq": "does_not_equal",
    "gt": "greater_than",
    "gte": "greater_than_or_equal_to",
    "lt": "less_than",
    "lte": "less_than_or_equal_to",
}

DATE_OPS = {
    "eq": "equals",
    "neq": "does_not_equal",
    "gt": "on_or_after",
    "gte": "on_or_after",
    "lt": "on_or_before",
    "lte": "on_or_before",
}

_TEXT_TYPES = {
    PropertyType.TITLE,
    PropertyType.RICH_TEXT,
    PropertyType.URL,
    PropertyType.EMAIL,
    PropertyType.PHONE_NUMBER,
}
_DATE_TYPES = {PropertyType.DATE, PropertyType.CREATED_TIME, PropertyType.LAST_EDITED_TIME}


def map_text_op(op: str) -> str:
    return TEXT_OPS.get(op, "equals")


def map_number_op(op: str) -> str:
    return NUMBER_OPS.get(op, "equals")


def map_date_op(op: str) -> str:
    return DATE_OPS.get(op, "equals")


@dataclass(frozen=True)
class FilterCondition:
    """``{"property": name, <type>: {<operator>: value}}``"""

    property: str
    type: str
    operator: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"property": self.property, self.type: {self.operator: self.value}}


@dataclass(frozen=True)
class SortDescriptor:
    property: str
    direction: str = "ascending"

    def to_dict(self) -> dict[str, Any]:
        return {"property": self.property, "direction": self.direction}


def split_expression(expression: str) -> tuple[str, str, str]:
    """Split a filter expression into ``(name, generic_op, raw_value)``.

    The first operator in ``OPERATORS`` that occurs anywhere in the
    expression wins, split at its first occurrence. ``!~=`` must precede
    ``~=``, the reverse of the order the operators are usually listed in;
    otherwise ``Name!~=x`` splits as ``Name!`` contains ``x``.
    """
    for token, op in OPERATORS:
        idx = expression.find(token)
        if idx < 0:
            continue
        name = expression[:idx].strip()
        value = expression[idx + len(token):].strip()
        return name, op, value
    raise NoOperatorFound(expression)


def build_condition(name: str, prop_type: str, op: str, value: str) -> FilterCondition:
    """Map a generic operator onto the type-specific filter for ``prop_type``."""
    if prop_type in _TEXT_TYPES:
        return FilterCondition(name, prop_type, map_text_op(op), value)
    if prop_type == PropertyType.NUMBER:
        number = parse_number(value)
        return FilterCondition(name, prop_type, map_number_op(op), value if number is None else number)
    if prop_type in (PropertyType.SELECT, PropertyType.STATUS):
        return FilterCondition(name, prop_type, "does_not_equal" if op == "neq" else "equals", value)
    if prop_type == PropertyType.MULTI_SELECT:
        operator = "does_not_contain" if op in {"neq", "not_contains"} else "contains"
        return FilterCondition(name, prop_type, operator, value)
    if prop_type in _DATE_TYPES:
        return FilterCondition(name, prop_type, map_date_op(op), value)
    if prop_type == PropertyType.CHECKBOX:
        return FilterCondition(name, prop_type, "equals", parse_bool(value))
    return FilterCondition(name, PropertyType.RICH_TEXT.value, map_text_op(op), value)


def compile_filter(expression: str, schema: PropertySchema) -> FilterCondition:
    """Compile one ``Field<op>Value`` expression against a database schema."""
    name, op, value = split_expression(expression)
    prop_type = schema.get(name)
    if prop_type is None:
        raise UnknownProperty(name, "database")
    return build_condition(name, prop_type, op, value)


def compile_filters(expressions: Iterable[str], schema: PropertySchema) -> dict[str, Any] | None:
    """Compile filters; two or more are AND-ed in the order given."""
    conditions = [compile_filter(expr, schema).to_dict() for expr in expressions]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"and": conditions}


def compile_sort(expression: str) -> SortDescriptor:
    """Compile ``Field[:asc|desc]``; anything but desc/descending sorts ascending."""
    name, sep, direction = expression.partition(":")
    if sep and direction.strip().lower() in {"desc", "descending"}:
        return SortDescriptor(name.strip(), "descending")
    return SortDescriptor(name.strip(), "ascending")
