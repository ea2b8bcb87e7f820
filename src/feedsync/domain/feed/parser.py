"""Feed parser: raw XML bytes to canonical feed items.

Supplier feeds come in several layouts. Each known layout is a
:class:`FeedShape` in :data:`FEED_SHAPES`, tried in order; the first shape
whose predicate accepts the parsed document provides the raw elements.
Supporting a new layout means adding an entry, not another branch.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, cast

from .normalize import DEFAULT_PRODUCT_TYPE, DEFAULT_VENDOR, normalize_items
from .xml_tree import parse_xml

if TYPE_CHECKING:
    from feedsync.domain.model import FeedItem

log = getLogger(__name__)

type RawElement = Mapping[str, object]
type Document = Mapping[str, object]


@dataclass(frozen=True, slots=True)
class FeedShape:
    name: str
    matches: Callable[[Document], bool]
    extract: Callable[[Document], list[RawElement]]


def _lookup(document: Document, path: tuple[str, ...]) -> object:
    current: object = document
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = cast("Mapping[str, object]", current).get(key)
    return current


def as_elements(value: object) -> list[RawElement]:
    """Wrap a single mapping in a list and drop non-mapping entries."""

    if isinstance(value, Mapping):
        return [cast("RawElement", value)]
    if isinstance(value, list):
        entries = cast("list[object]", value)
        return [cast("RawElement", entry) for entry in entries if isinstance(entry, Mapping)]
    return []


def path_shape(*path: str) -> FeedShape:
    def matches(document: Document) -> bool:
        return bool(as_elements(_lookup(document, path)))

    def extract(document: Document) -> list[RawElement]:
        return as_elements(_lookup(document, path))

    return FeedShape(name=".".join(path), matches=matches, extract=extract)


FEED_SHAPES: tuple[FeedShape, ...] = (
    path_shape("products", "product"),
    path_shape("catalog", "item"),
    path_shape("rss", "channel", "item"),
    path_shape("feed", "entry"),
    path_shape("channel", "item"),
    path_shape("item"),
    path_shape("product"),
)


def _is_element_list(value: object) -> bool:
    if not isinstance(value, list):
        return False
    entries = cast("list[object]", value)
    return bool(entries) and isinstance(entries[0], Mapping)


def scan_for_elements(document: Document) -> list[RawElement]:
    """Fallback: first list of mappings at top level, then one level down."""

    for key, value in document.items():
        if _is_element_list(value):
            log.info("Found feed entries under %s", key)
            return as_elements(value)
        if isinstance(value, Mapping):
            nested = cast("Mapping[str, object]", value)
            for nested_key, nested_value in nested.items():
                if _is_element_list(nested_value):
                    log.info("Found feed entries under %s.%s", key, nested_key)
                    return as_elements(nested_value)
    return []


def extract_raw_elements(
    document: Document,
    shapes: tuple[FeedShape, ...] = FEED_SHAPES,
) -> list[RawElement]:
    for shape in shapes:
        if shape.matches(document):
            log.debug("Feed matched shape %s", shape.name)
            return shape.extract(document)
    return scan_for_elements(document)


def parse_feed(
    data: bytes | str,
    *,
    default_vendor: str = DEFAULT_VENDOR,
    default_product_type: str = DEFAULT_PRODUCT_TYPE,
    shapes: tuple[FeedShape, ...] = FEED_SHAPES,
) -> list[FeedItem]:
    """Parse a feed document into feed items.

    Raises :class:`~feedsync.domain.errors.ParseError` for malformed markup.
    Unrecognised documents produce an empty list.
    """

    document = parse_xml(data)
    log.debug("Parsed feed document with top-level keys %s", list(document))
    raws = extract_raw_elements(document, shapes)
    if raws:
        log.debug("First feed entry carries fields %s", sorted(raws[0]))
    return normalize_items(
        raws,
        default_vendor=default_vendor,
        default_product_type=default_product_type,
    )
