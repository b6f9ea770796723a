"""Character attribute helpers.

Attributes are free-form key/value pairs stored as text with a declared type.
Dice expressions reference them as ``{character.<key>}``; see
:func:`attribute_bindings`.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Protocol

GENERAL_CATEGORY = "General"

COMMON_ATTRIBUTE_CATEGORIES: list[str] = [
    "Stats",
    "Skills",
    "Properties",
    "Equipment",
    "Abilities",
    "Traits",
    GENERAL_CATEGORY,
]


class AttributeType(str, enum.Enum):
    """Declared type of an attribute value."""

    text = "text"
    number = "number"
    boolean = "boolean"
    date = "date"
    url = "url"


ATTRIBUTE_TYPE_LABELS: dict[AttributeType, str] = {
    AttributeType.text: "Text",
    AttributeType.number: "Number",
    AttributeType.boolean: "Boolean (Yes/No)",
    AttributeType.date: "Date",
    AttributeType.url: "URL",
}


class AttributeLike(Protocol):
    key: str
    value: str | None
    type: AttributeType
    category: str | None
    order: int


def parse_attribute_value(type_: AttributeType, value: str) -> float | bool | str:
    """Convert a stored text value according to its declared type.

    Numbers that fail to parse are returned as the raw string.
    """
    if type_ == AttributeType.number:
        try:
            return float(value)
        except ValueError:
            return value
    if type_ == AttributeType.boolean:
        return value in ("true", "1")
    return value


def format_attribute_value(type_: AttributeType, value: str) -> str:
    """Return a display string for a stored value."""
    if type_ == AttributeType.boolean:
        return "Yes" if parse_attribute_value(type_, value) else "No"
    return value


def group_attributes_by_category(
    attributes: Iterable[AttributeLike],
) -> list[tuple[str, list[AttributeLike]]]:
    """Group attributes by category, each group sorted by ``order``.

    Uncategorized attributes fall under "General", which sorts last; other
    categories sort by name.
    """
    grouped: dict[str, list[AttributeLike]] = {}
    for attr in attributes:
        grouped.setdefault(attr.category or GENERAL_CATEGORY, []).append(attr)

    return sorted(
        ((category, sorted(attrs, key=lambda a: a.order)) for category, attrs in grouped.items()),
        key=lambda group: (group[0] == GENERAL_CATEGORY, group[0]),
    )


def attribute_bindings(attributes: Iterable[AttributeLike]) -> dict[str, str]:
    """Build the lower-cased key to value map used for dice expressions."""
    return {attr.key.lower(): attr.value or "" for attr in attributes}
