# staykeeper/domain/stock.py
from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class StockStatus(str, Enum):
    OUT = "Out"
    LOW = "Low"
    OK = "OK"


def stock_status(current_quantity: int, restock_threshold: int) -> StockStatus:
    if current_quantity == 0:
        return StockStatus.OUT
    if current_quantity <= restock_threshold:
        return StockStatus.LOW
    return StockStatus.OK


@dataclass(frozen=True)
class StockAdjustment:
    quantity: int
    restock_requested: bool
    status: StockStatus


def adjust_stock(
    current_quantity: int,
    restock_threshold: int,
    delta: int,
    *,
    restock_requested: bool = False,
) -> StockAdjustment:
    """Apply a count change. Never below zero; at or under threshold raises the restock flag."""
    qty = max(0, int(current_quantity) + int(delta))
    flag = bool(restock_requested) or qty <= int(restock_threshold)
    return StockAdjustment(quantity=qty, restock_requested=flag, status=stock_status(qty, restock_threshold))


def unit_price_from_package(
    cost_per_package: Optional[float],
    units_per_package: Optional[float],
    fallback: Optional[float] = None,
) -> Optional[float]:
    if cost_per_package and units_per_package and units_per_package > 0:
        return float(cost_per_package) / float(units_per_package)
    return fallback if fallback else None


def needs_restock(item: Mapping[str, Any]) -> bool:
    return bool(item.get("restock_requested")) or int(item.get("current_quantity") or 0) <= int(
        item.get("restock_threshold") or 0
    )


def low_stock_count(items: Iterable[Mapping[str, Any]]) -> int:
    return sum(
        1 for it in items if int(it.get("current_quantity") or 0) <= int(it.get("restock_threshold") or 0)
    )


def group_restock_by_property(items: Iterable[Mapping[str, Any]]) -> dict[str, list[Mapping[str, Any]]]:
    """Items needing restock keyed by property id ("unassigned" for null)."""
    groups: dict[str, list[Mapping[str, Any]]] = {}
    for it in items:
        if not needs_restock(it):
            continue
        groups.setdefault(str(it.get("property_id") or "unassigned"), []).append(it)
    return groups


def receive_restock(item: Mapping[str, Any], quantity: Optional[int] = None) -> dict[str, Any]:
    """Patch for an item whose order arrived."""
    qty = int(quantity or item.get("reorder_quantity") or 1)
    return {
        "current_quantity": int(item.get("current_quantity") or 0) + qty,
        "restock_requested": False,
    }


AMAZON_CSV_HEADERS = ["ASIN", "Merchant ID", "Quantity", "Unit Price", "Product Name", "Notes"]


def amazon_business_csv(items: Iterable[Mapping[str, Any]], property_name: Optional[str] = None) -> str:
    """Amazon Business bulk-order CSV. Items without an ASIN are skipped."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(AMAZON_CSV_HEADERS)
    for it in items:
        if not it.get("asin"):
            continue
        cpp = it.get("cost_per_package")
        notes = f"Property: {property_name} | " if property_name else ""
        notes += str(it.get("description") or "")
        w.writerow(
            [
                it["asin"],
                "",
                int(it.get("reorder_quantity") or 1),
                "" if cpp is None else str(cpp),
                it.get("amazon_title") or it.get("name") or "",
                notes,
            ]
        )
    return buf.getvalue()
