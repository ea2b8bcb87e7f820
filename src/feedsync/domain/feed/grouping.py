"""Partition feed items into variant groups."""

from __future__ import annotations

from typing import TYPE_CHECKING

from feedsync.domain.model import Availability, FeedItem, VariantGroup

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

GROUP_KEY_PREFIX = "group:"
STANDALONE_KEY_PREFIX = "item:"


def master_sort_key(item: FeedItem) -> tuple[int, object, str, str]:
    return (
        0 if item.availability is Availability.IN_STOCK else 1,
        item.price,
        item.title,
        item.external_id,
    )


def select_master(items: Sequence[FeedItem]) -> FeedItem:
    """Pick the representative item of a group.

    In-stock items win, then the lowest price, then the title in lexical
    order. The external id settles exact ties so the choice never depends on
    input order.
    """

    if not items:
        raise ValueError("Cannot select a master from an empty group")
    return min(items, key=master_sort_key)


def group_items(items: Iterable[FeedItem]) -> dict[str, VariantGroup]:
    """Group items by ``group_id``; items without one become singleton groups.

    Keys keep first-seen order. Real group ids and standalone ids live in
    separate key spaces, so they never collide.
    """

    buckets: dict[str, list[FeedItem]] = {}
    group_ids: dict[str, str | None] = {}
    for item in items:
        if item.group_id is not None:
            key = f"{GROUP_KEY_PREFIX}{item.group_id}"
            group_ids[key] = item.group_id
        else:
            key = _standalone_key(item, buckets)
            group_ids[key] = None
        buckets.setdefault(key, []).append(item)

    return {
        key: VariantGroup(
            key=key,
            items=tuple(members),
            master=select_master(members),
            group_id=group_ids[key],
        )
        for key, members in buckets.items()
    }


def _standalone_key(item: FeedItem, taken: dict[str, list[FeedItem]]) -> str:
    key = f"{STANDALONE_KEY_PREFIX}{item.external_id}"
    suffix = 2
    candidate = key
    while candidate in taken:
        candidate = f"{key}#{suffix}"
        suffix += 1
    return candidate
