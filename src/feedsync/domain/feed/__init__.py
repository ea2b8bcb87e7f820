"""Feed parsing, normalization and grouping."""

from __future__ import annotations

from .grouping import group_items, master_sort_key, select_master
from .normalize import (
    expand_variants,
    extract_images,
    extract_price,
    extract_tags,
    nested_variants,
    normalize_entry,
    normalize_item,
    normalize_items,
    resolve_inventory,
    resolve_sku,
)
from .parser import FEED_SHAPES, FeedShape, extract_raw_elements, parse_feed, path_shape
from .xml_tree import parse_xml

__all__ = [
    "FEED_SHAPES",
    "FeedShape",
    "expand_variants",
    "extract_images",
    "extract_price",
    "extract_raw_elements",
    "extract_tags",
    "group_items",
    "master_sort_key",
    "nested_variants",
    "normalize_entry",
    "normalize_item",
    "normalize_items",
    "parse_feed",
    "parse_xml",
    "path_shape",
    "resolve_inventory",
    "resolve_sku",
    "select_master",
]
