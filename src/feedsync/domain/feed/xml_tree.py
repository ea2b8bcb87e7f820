"""Convert XML documents into plain nested mappings.

The conversion mirrors the conventions common to JSON-ish XML readers:

- namespace URIs and prefixes are dropped (``g:price`` becomes ``price``),
- attributes are stored under ``@_{name}``,
- an element with attributes or children keeps its own text under ``#text``,
- an element with neither becomes its stripped text,
- repeated child tags collapse into a list in document order.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET  # noqa: N817
from typing import TYPE_CHECKING

from feedsync.domain.errors import ParseError

if TYPE_CHECKING:
    from collections.abc import Mapping

type XmlValue = str | XmlNode | list[XmlValue]
type XmlNode = dict[str, XmlValue]

ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"


def local_name(tag: str) -> str:
    if tag.startswith("{"):
        tag = tag.rsplit("}", 1)[1]
    if ":" in tag:
        tag = tag.rsplit(":", 1)[1]
    return tag


def parse_xml(data: bytes | str) -> XmlNode:
    """Parse ``data`` into ``{root_tag: converted_root}``.

    Blank input yields an empty mapping; malformed markup raises
    :class:`ParseError`.
    """

    raw = data.encode("utf-8") if isinstance(data, str) else data
    if not raw.strip():
        return {}
    try:
        root = ET.fromstring(raw)  # noqa: S314
    except ET.ParseError as exc:
        raise ParseError(f"Feed is not well-formed XML: {exc}") from exc
    return {local_name(root.tag): _convert(root)}


def _convert(element: ET.Element) -> XmlValue:
    node: XmlNode = {}
    for name, value in element.attrib.items():
        node[f"{ATTRIBUTE_PREFIX}{local_name(name)}"] = value.strip()

    for child in element:
        if not isinstance(child.tag, str):
            # comments and processing instructions
            continue
        key = local_name(child.tag)
        converted = _convert(child)
        existing = node.get(key)
        if existing is None:
            node[key] = converted
        elif isinstance(existing, list):
            existing.append(converted)
        else:
            node[key] = [existing, converted]

    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node[TEXT_KEY] = text
    return node


def text_of(value: object) -> str | None:
    """Return the text carried by a converted value, or ``None`` when blank."""

    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        for entry in value:  # pyright: ignore[reportUnknownVariableType]
            text = text_of(entry)
            if text is not None:
                return text
        return None
    if isinstance(value, dict):
        mapping: Mapping[str, object] = value  # pyright: ignore[reportUnknownVariableType]
        for key in (TEXT_KEY, f"{ATTRIBUTE_PREFIX}href", f"{ATTRIBUTE_PREFIX}value"):
            text = text_of(mapping.get(key))
            if text is not None:
                return text
        return None
    return str(value).strip() or None


def texts_of(value: object) -> list[str]:
    """Return every non-blank text of a value that may repeat."""

    if isinstance(value, list):
        texts: list[str] = []
        for entry in value:  # pyright: ignore[reportUnknownVariableType]
            texts.extend(texts_of(entry))
        return texts
    text = text_of(value)
    return [text] if text is not None else []
