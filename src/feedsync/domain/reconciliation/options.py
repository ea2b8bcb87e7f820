"""Variant option schema derived from the items of a multi-variant group."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from feedsync.domain.errors import ValidationError
from feedsync.domain.model import CONDITION_LABELS

if TYPE_CHECKING:
    from feedsync.domain.model import FeedItem, VariantGroup

CAPACITY_OPTION = "Capacity"
CONDITION_OPTION = "Condition"
COLOR_OPTION = "Color"
SIZE_OPTION = "Size"

DEFAULT_CAPACITY = "Standard"
DEFAULT_CONDITION = "New"
DEFAULT_COLOR = "Other"
DEFAULT_SIZE = "One Size"

# Shopify accepts at most three options per product.
MAX_OPTIONS = 3

_CAPACITY_PATTERN = re.compile(r"\b(\d+)\s?(GB|TB|ML|L)\b", re.IGNORECASE)


def capacity_of(title: str) -> str:
    """``"Phone 128 gb Black"`` gives ``"128GB"``; no match gives ``"Standard"``."""

    match = _CAPACITY_PATTERN.search(title)
    if match is None:
        return DEFAULT_CAPACITY
    return f"{match.group(1)}{match.group(2).upper()}"


def condition_of(item: FeedItem) -> str:
    return CONDITION_LABELS.get(item.condition, DEFAULT_CONDITION)


def option_value(name: str, item: FeedItem) -> str:
    if name == CAPACITY_OPTION:
        return capacity_of(item.title)
    if name == CONDITION_OPTION:
        return condition_of(item)
    if name == SIZE_OPTION:
        return item.size or DEFAULT_SIZE
    return item.color or DEFAULT_COLOR


@dataclass(frozen=True, slots=True)
class OptionSchema:
    """Option names with their values, master values first."""

    names: tuple[str, ...]
    values: tuple[tuple[str, ...], ...]

    def values_for(self, item: FeedItem) -> tuple[str, ...]:
        return tuple(option_value(name, item) for name in self.names)

    def option_values_input(self, item: FeedItem) -> list[dict[str, object]]:
        """``optionValues`` entries for a ``ProductVariantsBulkInput``."""

        return [
            {"optionName": name, "name": value}
            for name, value in zip(self.names, self.values_for(item), strict=True)
        ]

    def product_options_input(self) -> list[dict[str, object]]:
        """``productOptions`` for a ``ProductCreateInput``."""

        return [
            {"name": name, "values": [{"name": value} for value in values]}
            for name, values in zip(self.names, self.values, strict=True)
        ]


def _distinct(name: str, variants: tuple[FeedItem, ...]) -> int:
    return len({option_value(name, item) for item in variants})


def option_names(group: VariantGroup) -> tuple[str, ...]:
    """Capacity and Condition always; Color and Size when at least two values differ.

    When that exceeds :data:`MAX_OPTIONS`, Capacity then Condition are left
    out if every variant shares their value.
    """

    variants = group.variants
    names: list[str] = [CAPACITY_OPTION, CONDITION_OPTION]
    if len({item.color for item in variants if item.color}) >= 2:  # noqa: PLR2004
        names.append(COLOR_OPTION)
    if len({item.size for item in variants if item.size}) >= 2:  # noqa: PLR2004
        names.append(SIZE_OPTION)
    for optional in (CAPACITY_OPTION, CONDITION_OPTION):
        if len(names) > MAX_OPTIONS and _distinct(optional, variants) == 1:
            names.remove(optional)
    if len(names) > MAX_OPTIONS:
        raise ValidationError(f"{group.title!r} varies in more than {MAX_OPTIONS} options: {', '.join(names)}")
    return tuple(names)


def derive_options(group: VariantGroup) -> OptionSchema:
    """Option schema for ``group``.

    Raises :class:`ValidationError` when two variants resolve to the same
    option values, since the catalog rejects duplicate variants.
    """

    schema = OptionSchema(names=option_names(group), values=())
    collected: list[dict[str, None]] = [{} for _ in schema.names]
    seen: dict[tuple[str, ...], FeedItem] = {}
    for item in group.variants:
        values = schema.values_for(item)
        clash = seen.setdefault(values, item)
        if clash is not item:
            raise ValidationError(
                f"Variants {clash.external_id!r} and {item.external_id!r} of {group.title!r} "
                f"share options {' / '.join(values)}"
            )
        for index, value in enumerate(values):
            collected[index].setdefault(value, None)
    return OptionSchema(
        names=schema.names,
        values=tuple(tuple(values) for values in collected),
    )
