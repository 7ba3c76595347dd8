# staykeeper/services/migration.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..domain.stock import unit_price_from_package
from ..errors import MigrationError, StayKeeperError
from .client_storage import LEGACY_ITEMS_KEY, MIGRATION_FLAG_KEY, KeyValueStore
from .entity_store import EntityStore
from .identity import IdentityResolver, SessionUser
from .notifications import DESTRUCTIVE, Notifier

log = logging.getLogger(__name__)

AUTH_LOADING = "auth_loading"
ALREADY_DONE = "already_done"
NOTHING_TO_MIGRATE = "nothing_to_migrate"
WAITING_FOR_USER = "waiting_for_user"
REMOTE_HAS_DATA = "remote_has_data"
MIGRATED = "migrated"
FAILED = "failed"

FALLBACK_CATEGORY = "Other"
FALLBACK_CATEGORY_DESCRIPTION = "Default category for uncategorized items"
LEGACY_REORDER_QUANTITY = 10
LEGACY_RESTOCK_THRESHOLD = 5


@dataclass(frozen=True)
class MigrationOutcome:
    status: str
    migrated_count: int = 0
    error: Optional[str] = None

    @property
    def flag_set(self) -> bool:
        return self.status in (ALREADY_DONE, NOTHING_TO_MIGRATE, REMOTE_HAS_DATA, MIGRATED)


def parse_legacy_items(raw: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MigrationError("Legacy inventory data is not valid JSON") from e
    if not isinstance(data, list):
        raise MigrationError("Legacy inventory data must be a list of items")
    for i, item in enumerate(data):
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            raise MigrationError("Legacy inventory item is missing a name", detail={"index": i})
    return data


def map_legacy_item(item: dict[str, Any], *, category_id: Optional[str], profile_id: str) -> dict[str, Any]:
    """Legacy camelCase item -> inventory_items row. Falsy legacy values take the defaults."""
    notes = item.get("notes") or None
    supplier_url = item.get("supplierUrl") or None
    return {
        "name": str(item["name"]),
        "category_id": category_id,
        "current_quantity": int(item.get("currentStock") or 0),
        "restock_threshold": int(item.get("restockLevel") or LEGACY_RESTOCK_THRESHOLD),
        "reorder_quantity": LEGACY_REORDER_QUANTITY,
        "unit_price": unit_price_from_package(
            item.get("costPerPackage"), item.get("unitsPerPackage"), item.get("cost") or None
        ),
        "unit": item.get("unit") or None,
        "units_per_package": item.get("unitsPerPackage") or None,
        "cost_per_package": item.get("costPerPackage") or None,
        "supplier": item.get("supplier") or None,
        "description": notes,
        "notes": notes,
        "amazon_image_url": item.get("image_url") or None,
        "amazon_link": supplier_url,
        "asin": item.get("asin") or None,
        "reorder_link": supplier_url,
        "restock_requested": bool(item.get("restockRequested") or False),
        "created_by": profile_id,
    }


class InventoryMigration:
    """
    Moves the legacy client-side inventory list into the entity store, once.

    Safe to call repeatedly. The guards run in a fixed order and each one
    short-circuits. The "remote already has items" guard is check-then-act:
    two clients migrating at the same instant can both insert.
    """

    def __init__(
        self,
        store: EntityStore,
        storage: KeyValueStore,
        notifier: Notifier,
        identity: IdentityResolver,
    ) -> None:
        self.store = store
        self.storage = storage
        self.notifier = notifier
        self.identity = identity

    def _mark_done(self) -> None:
        self.storage.set(MIGRATION_FLAG_KEY, "true")

    def run(self, user: Optional[SessionUser], is_auth_loading: bool = False) -> MigrationOutcome:
        if is_auth_loading:
            return MigrationOutcome(AUTH_LOADING)

        if self.storage.get(MIGRATION_FLAG_KEY) == "true":
            return MigrationOutcome(ALREADY_DONE)

        raw = self.storage.get(LEGACY_ITEMS_KEY)
        if not raw:
            self._mark_done()
            return MigrationOutcome(NOTHING_TO_MIGRATE)

        if user is None:
            return MigrationOutcome(WAITING_FOR_USER)

        try:
            existing = self.store.list("inventory_items", limit=1)
            if existing:
                self._mark_done()
                log.info("remote inventory already populated, skipping migration")
                return MigrationOutcome(REMOTE_HAS_DATA)

            count = self._migrate(raw, user)
        except StayKeeperError as e:
            log.exception("inventory migration failed", extra={"user_id": user.user_id})
            self.notifier.notify("Migration Error", e.message or "Failed to migrate data", DESTRUCTIVE)
            return MigrationOutcome(FAILED, error=e.message)

        self._mark_done()
        self.notifier.notify("Migration Complete", f"Successfully migrated {count} inventory items")
        log.info("inventory migration complete", extra={"user_id": user.user_id, "status": f"{count} items"})
        return MigrationOutcome(MIGRATED, migrated_count=count)

    def _migrate(self, raw: str, user: SessionUser) -> int:
        items = parse_legacy_items(raw)

        profile_id = self.identity.profile_id(user)
        if not profile_id:
            raise MigrationError("Profile not found", detail={"user_id": user.user_id})

        categories: dict[str, str] = {}
        for c in self.store.list("inventory_categories"):
            categories.setdefault(str(c["name"]).lower(), str(c["id"]))

        fallback_id = categories.get(FALLBACK_CATEGORY.lower())
        if fallback_id is None:
            row = self.store.insert(
                "inventory_categories",
                {
                    "name": FALLBACK_CATEGORY,
                    "description": FALLBACK_CATEGORY_DESCRIPTION,
                    "is_predefined": True,
                    "created_by": profile_id,
                },
            )
            fallback_id = str(row["id"])
            categories[FALLBACK_CATEGORY.lower()] = fallback_id

        for item in items:
            name = str(item.get("category") or "")
            category_id = categories.get(name.lower())
            if category_id is None and name and name != FALLBACK_CATEGORY:
                row = self.store.insert(
                    "inventory_categories",
                    {"name": name, "description": None, "is_predefined": False, "created_by": profile_id},
                )
                category_id = str(row["id"])
                categories[name.lower()] = category_id

            try:
                row = map_legacy_item(item, category_id=category_id or fallback_id, profile_id=profile_id)
            except (TypeError, ValueError) as e:
                raise MigrationError(f"Legacy item {item.get('name')!r} has invalid numbers") from e
            self.store.insert("inventory_items", row)

        return len(items)
