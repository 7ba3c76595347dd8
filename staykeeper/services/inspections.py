# staykeeper/services/inspections.py
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..domain.checklists import (
    ActiveItem,
    TemplateItem,
    active_from_json,
    instantiate,
    items_from_json,
    predefined_templates,
    reconcile,
    set_item_notes,
    toggle_item,
)
from ..domain.schedule import FREQUENCY_TYPES, next_occurrence
from ..domain.scoping import PropertyScope
from ..errors import ProtectedRecordError, StayKeeperError, ValidationError
from .client_storage import ACTIVE_INSPECTION_PREFIX, KeyValueStore
from .entity_store import EntityStore, list_scoped
from .notifications import DESTRUCTIVE, Notifier

log = logging.getLogger(__name__)

TEMPLATE_FIELDS = (
    "name",
    "items",
    "property_id",
    "frequency_type",
    "frequency_days",
    "next_occurrence",
    "notifications_enabled",
    "notification_method",
    "notification_days_ahead",
)


def _iso(d: Optional[date | str]) -> Optional[str]:
    if d is None or d == "":
        return None
    return d.isoformat() if isinstance(d, date) else str(d)[:10]


def coerce_template_items(items: Iterable[Any]) -> list[TemplateItem]:
    """Accepts TemplateItem, dicts, or bare description strings."""
    out: list[TemplateItem] = []
    for it in items or []:
        if isinstance(it, TemplateItem):
            out.append(it)
        elif isinstance(it, str):
            out.append(TemplateItem.from_dict({"description": it}))
        else:
            out.append(TemplateItem.from_dict(it))
    for it in out:
        if not it.description.strip():
            raise ValidationError("Checklist item description is required")
    return out


def validate_template_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Check template fields and turn them into an entity-store row."""
    unknown = set(changes) - set(TEMPLATE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown template fields: {', '.join(sorted(unknown))}")

    row = dict(changes)
    if "name" in row:
        row["name"] = str(row["name"] or "").strip()
        if not row["name"]:
            raise ValidationError("Template name is required")
    if "items" in row:
        row["items"] = [t.to_dict() for t in coerce_template_items(row["items"])]
    ft = row.get("frequency_type")
    if ft is not None and ft not in FREQUENCY_TYPES:
        raise ValidationError(f"Unknown frequency type: {ft}")
    if ft == "custom" and not row.get("frequency_days"):
        raise ValidationError("Custom frequency needs frequency_days")
    if "next_occurrence" in row:
        row["next_occurrence"] = _iso(row["next_occurrence"])
    return row


def guard_template_update(current: dict[str, Any], row: dict[str, Any]) -> None:
    if current.get("is_predefined") and "name" in row and row["name"] != current.get("name"):
        raise ProtectedRecordError("Predefined templates cannot be renamed")


def guard_template_delete(current: dict[str, Any]) -> None:
    if current.get("is_predefined"):
        raise ProtectedRecordError("Predefined templates cannot be deleted")


def seed_predefined_templates(
    store: EntityStore, property_id: Optional[str] = None, *, created_by: Optional[str] = None
) -> list[dict[str, Any]]:
    """Insert the default templates missing (by name) from the property, or from the shared pool."""
    scope = PropertyScope.for_property(property_id) if property_id else PropertyScope.unassigned()
    existing = {str(t["name"]) for t in list_scoped(store, "inspection_templates", scope)}
    created = []
    for p in predefined_templates():
        if p.name in existing:
            continue
        created.append(
            store.insert(
                "inspection_templates",
                {
                    "name": p.name,
                    "items": [t.to_dict() for t in coerce_template_items(p.items)],
                    "property_id": property_id,
                    "is_predefined": True,
                    "frequency_type": p.frequency_type,
                    "created_by": created_by,
                },
            )
        )
    log.info("seeded predefined templates", extra={"property_id": property_id, "status": f"{len(created)} created"})
    return created


def assigned_template_ids(store: EntityStore, user_id: Optional[str]) -> Optional[set[str]]:
    """Templates assigned to the user, or None when nothing is (meaning: no narrowing)."""
    if not user_id:
        return None
    ids = {str(a["template_id"]) for a in store.list("inspection_assignments", {"assigned_to": user_id})}
    return ids or None


def inspection_record_row(
    template: dict[str, Any],
    items: Sequence[ActiveItem],
    *,
    inspection_date: date,
    performed_by: Optional[str] = None,
    entered_by: Optional[str] = None,
    next_due_date: Optional[date] = None,
) -> dict[str, Any]:
    """
    The immutable snapshot saved for a finished checklist. The next due date
    follows the template frequency unless one is given.
    """
    if next_due_date is None:
        next_due_date = next_occurrence(
            inspection_date, template.get("frequency_type"), template.get("frequency_days")
        )
    return {
        "template_id": template.get("id"),
        "template_name": str(template.get("name") or ""),
        "property_id": template.get("property_id"),
        "inspection_date": inspection_date.isoformat(),
        "next_due_date": _iso(next_due_date),
        "items": [it.to_dict() for it in items],
        "performed_by": performed_by or None,
        "entered_by": entered_by or None,
    }


class ActiveInspectionStore:
    """In-progress checklists, one per template, kept in client storage."""

    def __init__(self, storage: KeyValueStore) -> None:
        self.storage = storage

    @staticmethod
    def key(template_id: str) -> str:
        return f"{ACTIVE_INSPECTION_PREFIX}{template_id}"

    def load(self, template_id: str) -> Optional[list[ActiveItem]]:
        raw = self.storage.get(self.key(template_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("discarding unreadable working copy", extra={"template_id": template_id})
            self.storage.remove(self.key(template_id))
            return None
        return active_from_json(data if isinstance(data, list) else [])

    def save(self, template_id: str, items: Sequence[ActiveItem]) -> None:
        self.storage.set(self.key(template_id), json.dumps([it.to_dict() for it in items]))

    def drop(self, template_id: str) -> None:
        self.storage.remove(self.key(template_id))

    def has(self, template_id: str) -> bool:
        return self.storage.get(self.key(template_id)) is not None


class _NotifyingService:
    def __init__(self, store: EntityStore, sessions: ActiveInspectionStore, notifier: Notifier) -> None:
        self.store = store
        self.sessions = sessions
        self.notifier = notifier

    def _fail(self, fallback: str, e: StayKeeperError) -> None:
        log.warning("%s: %s", fallback, e.message)
        self.notifier.notify("Error", e.message or fallback, DESTRUCTIVE)


class TemplateService(_NotifyingService):
    """
    Template CRUD. Saving a template also brings the matching working copy
    (if any) up to date with the new item list.
    """

    def list_templates(self, scope: PropertyScope) -> list[dict[str, Any]]:
        try:
            return list_scoped(self.store, "inspection_templates", scope, order_by="name")
        except StayKeeperError as e:
            self._fail("Failed to load templates", e)
            return []

    def get_template(self, template_id: str) -> Optional[dict[str, Any]]:
        try:
            rows = self.store.list("inspection_templates", {"id": template_id}, limit=1)
        except StayKeeperError as e:
            self._fail("Failed to load template", e)
            return None
        return rows[0] if rows else None

    def create_template(self, *, created_by: Optional[str] = None, **fields: Any) -> Optional[dict[str, Any]]:
        try:
            row = validate_template_changes({"items": [], **fields})
            if "name" not in row:
                raise ValidationError("Template name is required")
            row["is_predefined"] = False
            row["created_by"] = created_by
            out = self.store.insert("inspection_templates", row)
        except StayKeeperError as e:
            self._fail("Failed to create template", e)
            return None
        self.notifier.notify("Template created", "Inspection template created successfully.")
        return out

    def update_template(self, template_id: str, **changes: Any) -> Optional[dict[str, Any]]:
        try:
            row = validate_template_changes(changes)
            current = self.store.list("inspection_templates", {"id": template_id}, limit=1)
            if current:
                guard_template_update(current[0], row)
            out = self.store.update("inspection_templates", template_id, row)
        except StayKeeperError as e:
            self._fail("Failed to update template", e)
            return None

        active = self.sessions.load(template_id)
        if active is not None:
            merged = reconcile(active, items_from_json(out.get("items")))
            self.sessions.save(template_id, merged)

        self.notifier.notify("Template updated", "Inspection template updated successfully.")
        return out

    def delete_template(self, template_id: str) -> bool:
        try:
            current = self.store.list("inspection_templates", {"id": template_id}, limit=1)
            if current:
                guard_template_delete(current[0])
            self.store.delete("inspection_templates", template_id)
        except StayKeeperError as e:
            self._fail("Failed to delete template", e)
            return False
        self.sessions.drop(template_id)
        self.notifier.notify("Template deleted", "Inspection template deleted successfully.")
        return True

    def seed_predefined(self, property_id: Optional[str] = None, *, created_by: Optional[str] = None) -> list[dict[str, Any]]:
        """Create the default templates that are not there yet (matched by name)."""
        try:
            return seed_predefined_templates(self.store, property_id, created_by=created_by)
        except StayKeeperError as e:
            self._fail("Failed to create default templates", e)
            return []


class InspectionService(_NotifyingService):
    """Running a checklist: start or resume, tick items, save the record."""

    def start(self, template: dict[str, Any]) -> list[ActiveItem]:
        tid = str(template["id"])
        items = items_from_json(template.get("items"))
        active = self.sessions.load(tid)
        if active is None:
            active = instantiate(items)
        else:
            active = reconcile(active, items)
        self.sessions.save(tid, active)
        return active

    def current(self, template_id: str) -> Optional[list[ActiveItem]]:
        return self.sessions.load(template_id)

    def toggle(self, template_id: str, item_id: str) -> Optional[list[ActiveItem]]:
        return self._edit(template_id, lambda items: toggle_item(items, item_id))

    def set_notes(self, template_id: str, item_id: str, notes: str) -> Optional[list[ActiveItem]]:
        return self._edit(template_id, lambda items: set_item_notes(items, item_id, notes))

    def _edit(self, template_id: str, fn) -> Optional[list[ActiveItem]]:
        items = self.sessions.load(template_id)
        if items is None:
            self.notifier.notify("Error", "No inspection in progress for this template", DESTRUCTIVE)
            return None
        try:
            items = fn(items)
        except StayKeeperError as e:
            self._fail("Failed to update checklist", e)
            return None
        self.sessions.save(template_id, items)
        return items

    def discard(self, template_id: str) -> None:
        self.sessions.drop(template_id)

    def commit(
        self,
        template: dict[str, Any],
        *,
        inspection_date: date,
        performed_by: Optional[str] = None,
        entered_by: Optional[str] = None,
        next_due_date: Optional[date] = None,
    ) -> Optional[dict[str, Any]]:
        tid = str(template["id"])
        items = self.sessions.load(tid)
        if not items:
            self.notifier.notify("Error", "Start the inspection before saving it", DESTRUCTIVE)
            return None

        row = inspection_record_row(
            template,
            items,
            inspection_date=inspection_date,
            performed_by=performed_by,
            entered_by=entered_by,
            next_due_date=next_due_date,
        )
        try:
            out = self.store.insert("inspection_records", row)
        except StayKeeperError as e:
            # working copy stays so the user can retry
            self._fail("Failed to save inspection", e)
            return None

        self.sessions.drop(tid)
        self.notifier.notify("Inspection saved", "Inspection record created successfully.")
        return out

    def history(self, scope: PropertyScope, *, limit: Optional[int] = None) -> list[dict[str, Any]]:
        try:
            return list_scoped(self.store, "inspection_records", scope, order_by="-inspection_date", limit=limit)
        except StayKeeperError as e:
            self._fail("Failed to load inspections", e)
            return []

    def delete_record(self, record_id: str) -> bool:
        try:
            self.store.delete("inspection_records", record_id)
        except StayKeeperError as e:
            self._fail("Failed to delete inspection", e)
            return False
        self.notifier.notify("Inspection deleted", "Inspection record deleted successfully.")
        return True
