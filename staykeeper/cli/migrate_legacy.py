# staykeeper/cli/migrate_legacy.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..services.client_storage import LEGACY_ITEMS_KEY, KeyValueStore
from ..services.entity_store import SqlEntityStore
from ..services.identity import SessionUser, StoreIdentity
from ..services.migration import InventoryMigration, MigrationOutcome
from ..services.notifications import Notifier


def migrate_legacy(
    store: SqlEntityStore,
    storage: KeyValueStore,
    notifier: Notifier,
    *,
    email: str,
    legacy_file: Optional[Path] = None,
) -> MigrationOutcome:
    """
    Load a legacy inventory export into client storage (when given) and run
    the one-time migration as the user with this email.
    """
    if legacy_file is not None:
        storage.set(LEGACY_ITEMS_KEY, Path(legacy_file).read_text(encoding="utf-8"))

    rows = store.list("app_users", {"email": email.strip().lower()}, limit=1)
    user = SessionUser(user_id=str(rows[0]["id"]), email=str(rows[0]["email"])) if rows else None

    return InventoryMigration(store, storage, notifier, StoreIdentity(store)).run(user, is_auth_loading=False)
