"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Condition(StrEnum):
    NEW = "new"
    REFURBISHED = "refurbished"
    USED = "used"


class Availability(StrEnum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    PREORDER = "preorder"
    UNKNOWN = "unknown"


class SyncStatus(StrEnum):
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


CONDITION_LABELS: dict[Condition, str] = {
    Condition.NEW: "New",
    Condition.REFURBISHED: "Refurbished",
    Condition.USED: "Used",
}
