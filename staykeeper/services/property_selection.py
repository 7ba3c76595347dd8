# staykeeper/services/property_selection.py
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from ..domain.scoping import PropertyMode, PropertyScope, apply_scope
from ..errors import StayKeeperError
from .change_feed import Change, Subscription
from .client_storage import PROPERTY_MODE_KEY, SELECTED_PROPERTY_KEY, KeyValueStore
from .entity_store import EntityStore
from .notifications import DESTRUCTIVE, Notifier

log = logging.getLogger(__name__)

Listener = Callable[["PropertySelectionStore"], None]


class PropertySelectionStore:
    """
    Which property (or all / unassigned) the client is scoped to.

    Built explicitly and passed to whoever needs it; start() loads and
    subscribes, close() tears the subscription down. Both the mode and the
    selected id are written to client storage on every change.
    """

    def __init__(self, store: EntityStore, storage: KeyValueStore, notifier: Notifier) -> None:
        self.store = store
        self.storage = storage
        self.notifier = notifier

        self.selected_property: Optional[dict[str, Any]] = None
        self.mode: PropertyMode = PropertyMode.PROPERTY
        self.user_properties: list[dict[str, Any]] = []
        self.is_loading: bool = True

        self._listeners: list[Listener] = []
        self._subscription: Optional[Subscription] = None

    # -------------------------
    # lifecycle
    # -------------------------
    def start(self) -> "PropertySelectionStore":
        self.mode = PropertyMode.parse(self.storage.get(PROPERTY_MODE_KEY), default=PropertyMode.PROPERTY)
        self.refresh()
        if self._subscription is None:
            self._subscription = self.store.subscribe("properties", self._on_change)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    def __enter__(self) -> "PropertySelectionStore":
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _on_change(self, change: Change) -> None:
        log.info("properties changed elsewhere, reloading", extra={"row_id": change.row_id})
        self.refresh()

    # -------------------------
    # read side
    # -------------------------
    @property
    def selected_property_id(self) -> Optional[str]:
        return str(self.selected_property["id"]) if self.selected_property else None

    @property
    def scope(self) -> PropertyScope:
        if self.mode == PropertyMode.PROPERTY:
            return PropertyScope.for_property(self.selected_property_id)
        return PropertyScope(self.mode, None)

    def filter_rows(self, rows: Iterable[Any], key: str = "property_id") -> list[Any]:
        return apply_scope(rows, self.scope, key)

    def add_listener(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _changed(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception:
                log.exception("property selection listener failed")

    # -------------------------
    # fetch + reconcile
    # -------------------------
    def refresh(self) -> None:
        self.is_loading = True
        try:
            rows = self.store.list("properties", order_by="name")
        except StayKeeperError:
            log.exception("failed to load properties")
            self.notifier.notify("Error", "Failed to load properties", DESTRUCTIVE)
            return
        finally:
            self.is_loading = False
        self._reconcile(rows)
        self._changed()

    def _reconcile(self, rows: list[dict[str, Any]]) -> None:
        self.user_properties = list(rows)

        if not rows:
            self.selected_property = None
            self.storage.remove(SELECTED_PROPERTY_KEY)
            return

        if len(rows) == 1:
            self.selected_property = rows[0]
            self.storage.set(SELECTED_PROPERTY_KEY, str(rows[0]["id"]))
            return

        wanted = self.storage.get(SELECTED_PROPERTY_KEY) or self.selected_property_id
        if not wanted:
            return
        match = next((p for p in rows if str(p["id"]) == wanted), None)
        if match is None:
            self.selected_property = None
            self.storage.remove(SELECTED_PROPERTY_KEY)
        else:
            self.selected_property = match

    # -------------------------
    # mutators
    # -------------------------
    def set_selected_property(self, prop: Optional[dict[str, Any]]) -> None:
        self.selected_property = prop
        self.mode = PropertyMode.PROPERTY
        self._persist()
        self._changed()

    def set_property_mode(self, mode: PropertyMode | str, prop: Optional[dict[str, Any]] = None) -> None:
        self.mode = PropertyMode.parse(mode) if isinstance(mode, str) else mode
        if self.mode == PropertyMode.PROPERTY and prop:
            self.selected_property = prop
        else:
            self.selected_property = None
        self._persist()
        self._changed()

    def _persist(self) -> None:
        self.storage.set(PROPERTY_MODE_KEY, self.mode.value)
        if self.selected_property is not None:
            self.storage.set(SELECTED_PROPERTY_KEY, str(self.selected_property["id"]))
        else:
            self.storage.remove(SELECTED_PROPERTY_KEY)
