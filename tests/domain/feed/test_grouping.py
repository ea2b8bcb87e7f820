from __future__ import annotations

import random

import pytest

from feedsync.domain.feed import group_items, select_master
from feedsync.domain.model import Availability
from tests.helpers.feeds import make_item


def test_groups_partition_items_by_group_id() -> None:
    items = [
        make_item("A", group_id="G1"),
        make_item("B"),
        make_item("C", group_id="G1"),
        make_item("D", group_id="G2"),
        make_item("E"),
    ]

    groups = group_items(items)

    assert list(groups) == ["group:G1", "item:B", "group:G2", "item:E"]
    assert sorted(item.external_id for group in groups.values() for item in group.items) == [
        "A",
        "B",
        "C",
        "D",
        "E",
    ]
    assert [item.external_id for item in groups["group:G1"].items] == ["A", "C"]
    assert groups["item:B"].group_id is None
    assert groups["group:G1"].group_id == "G1"


def test_group_id_never_collides_with_standalone_id() -> None:
    groups = group_items([make_item("G1"), make_item("X", group_id="G1")])

    assert len(groups) == 2


def test_duplicate_standalone_ids_stay_separate() -> None:
    groups = group_items([make_item("A"), make_item("A", title="Other")])

    assert list(groups) == ["item:A", "item:A#2"]


def test_master_prefers_in_stock_then_price_then_title() -> None:
    cheap_out = make_item("1", price="5.00", availability=Availability.OUT_OF_STOCK)
    pricey = make_item("2", price="30.00")
    cheap_b = make_item("3", price="10.00", title="B title")
    cheap_a = make_item("4", price="10.00", title="A title")

    assert select_master([cheap_out, pricey, cheap_b, cheap_a]) is cheap_a


def test_master_is_independent_of_input_order() -> None:
    items = [make_item(str(index), group_id="G", price="10.00", title="Same") for index in range(6)]
    shuffled = items[:]
    random.Random(7).shuffle(shuffled)

    assert group_items(items)["group:G"].master.external_id == "0"
    assert group_items(shuffled)["group:G"].master.external_id == "0"


def test_variants_list_master_first() -> None:
    red = make_item("R", group_id="G", price="10.00", color="Red")
    blue = make_item("B", group_id="G", price="12.00", color="Blue")
    green = make_item("N", group_id="G", price="8.00", color="Green", availability=Availability.PREORDER)

    group = group_items([blue, green, red])["group:G"]

    assert group.master is red
    assert [item.external_id for item in group.variants] == ["R", "B", "N"]


def test_select_master_rejects_empty_group() -> None:
    with pytest.raises(ValueError, match="empty"):
        select_master([])
