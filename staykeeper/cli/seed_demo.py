# staykeeper/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..services.entity_store import SqlEntityStore
from ..services.inspections import ActiveInspectionStore, TemplateService
from ..services.client_storage import InMemoryKeyValueStore
from ..services.notifications import LogNotifier

DEMO_PROPERTIES = (
    {"name": "Lakeview Cottage", "address": "12 Shore Rd", "city": "Traverse City", "state": "MI", "zip": "49684"},
    {"name": "Downtown Loft", "address": "400 Main St Unit 5", "city": "Grand Rapids", "state": "MI", "zip": "49503"},
)

DEMO_CATEGORIES = ("Cleaning Supplies", "Toiletries", "Kitchen", "Other")

DEMO_ITEMS = (
    # name, category, quantity, threshold, asin
    ("Paper Towels", "Cleaning Supplies", 3, 5, "B07MHJFRBJ"),
    ("Dish Soap", "Kitchen", 8, 4, None),
    ("Toilet Paper", "Toiletries", 24, 12, "B07GTWQTGL"),
    ("Shampoo (travel)", "Toiletries", 0, 6, None),
)


@dataclass(frozen=True)
class SeedResult:
    user_email: str
    user_id: str
    property_ids: list[str] = field(default_factory=list)
    template_count: int = 0
    item_count: int = 0


def _get_or_create(store: SqlEntityStore, table: str, match: dict[str, Any], values: Optional[dict[str, Any]] = None):
    rows = store.list(table, match, limit=1)
    if rows:
        return rows[0], False
    return store.insert(table, {**match, **(values or {})}), True


def seed_demo(
    store: SqlEntityStore,
    *,
    user_email: str = "owner@staykeeper.local",
    user_name: str = "Demo Owner",
    with_inventory: bool = True,
) -> SeedResult:
    """Idempotent: re-running finds the rows it made the first time."""
    user, _ = _get_or_create(store, "app_users", {"email": user_email.strip().lower()}, {"full_name": user_name})
    uid = str(user["id"])
    _get_or_create(store, "user_roles", {"user_id": uid, "role": "owner"})

    property_ids = []
    for p in DEMO_PROPERTIES:
        row, _ = _get_or_create(store, "properties", {"name": p["name"]}, {**p, "created_by": uid})
        property_ids.append(str(row["id"]))

    templates = TemplateService(store, ActiveInspectionStore(InMemoryKeyValueStore()), LogNotifier())
    created = templates.seed_predefined(None, created_by=uid)

    items = 0
    if with_inventory:
        categories = {}
        for name in DEMO_CATEGORIES:
            row, _ = _get_or_create(
                store, "inventory_categories", {"name": name}, {"is_predefined": True, "created_by": uid}
            )
            categories[name] = str(row["id"])
        for i, (name, cat, qty, threshold, asin) in enumerate(DEMO_ITEMS):
            _, made = _get_or_create(
                store,
                "inventory_items",
                {"name": name},
                {
                    "category_id": categories[cat],
                    "property_id": property_ids[i % len(property_ids)],
                    "current_quantity": qty,
                    "restock_threshold": threshold,
                    "restock_requested": qty <= threshold,
                    "asin": asin,
                    "created_by": uid,
                },
            )
            items += int(made)

    return SeedResult(
        user_email=str(user["email"]),
        user_id=uid,
        property_ids=property_ids,
        template_count=len(created),
        item_count=items,
    )
