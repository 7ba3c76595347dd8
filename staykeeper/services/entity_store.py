# staykeeper/services/entity_store.py
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.scoping import PropertyScope
from ..errors import EntityStoreError, NotFoundError, PermissionDeniedError, ValidationError
from ..models import (
    AppUser,
    DamageReport,
    InspectionAssignment,
    InspectionRecord,
    InspectionTemplate,
    InventoryCategory,
    InventoryItem,
    Property,
    PropertyAssignment,
    UserRole,
)
from .access import visible_property_ids
from .change_feed import DELETE, INSERT, UPDATE, Change, ChangeCallback, ChangeFeed, Subscription

log = logging.getLogger(__name__)

Row = dict[str, Any]


class EntityStore(Protocol):
    """
    What the client core needs from the backend: per-table CRUD, equality
    filtered listing, and change notifications keyed by table name.
    """

    def list(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Row]: ...

    def insert(self, table: str, row: Mapping[str, Any]) -> Row: ...

    def update(self, table: str, row_id: str, patch: Mapping[str, Any]) -> Row: ...

    def delete(self, table: str, row_id: str) -> None: ...

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription: ...


@dataclass(frozen=True)
class TableSpec:
    name: str
    model: type
    # public field name -> JSON text column
    json_fields: dict[str, str] = field(default_factory=dict)
    property_scoped: bool = False
    # non-managers only see their own rows
    owner_column: Optional[str] = None
    write_role: Optional[str] = None


TABLES: dict[str, TableSpec] = {
    "properties": TableSpec("properties", Property, write_role="manager"),
    "inventory_categories": TableSpec("inventory_categories", InventoryCategory),
    "inventory_items": TableSpec("inventory_items", InventoryItem, property_scoped=True),
    "inspection_templates": TableSpec(
        "inspection_templates", InspectionTemplate, json_fields={"items": "items_json"}, property_scoped=True
    ),
    "inspection_records": TableSpec(
        "inspection_records", InspectionRecord, json_fields={"items": "items_json"}, property_scoped=True
    ),
    "damage_reports": TableSpec(
        "damage_reports", DamageReport, json_fields={"photo_urls": "photo_urls_json"}, property_scoped=True
    ),
    "inspection_assignments": TableSpec(
        "inspection_assignments", InspectionAssignment, owner_column="assigned_to", write_role="manager"
    ),
    "app_users": TableSpec("app_users", AppUser, owner_column="id", write_role="owner"),
    "user_roles": TableSpec("user_roles", UserRole, owner_column="user_id", write_role="owner"),
    "property_assignments": TableSpec(
        "property_assignments", PropertyAssignment, owner_column="user_id", write_role="owner"
    ),
}

_SERVER_COLUMNS = ("created_at", "updated_at")


def table_spec(table: str) -> TableSpec:
    spec = TABLES.get(table)
    if spec is None:
        raise ValidationError(f"Unknown table: {table}")
    return spec


def _columns(spec: TableSpec) -> dict[str, Any]:
    return {c.name: c for c in spec.model.__table__.columns}


def _coerce(col: Any, value: Any) -> Any:
    if value is None:
        return None
    t = col.type
    try:
        if isinstance(t, DateTime):
            return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        if isinstance(t, Date):
            if isinstance(value, datetime):
                return value.date()
            return value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
        if isinstance(t, Boolean):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if isinstance(t, Integer):
            return int(value)
        if isinstance(t, Float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid value for {col.name}: {value!r}") from e
    return value


def row_to_dict(spec: TableSpec, obj: Any) -> Row:
    json_cols = {v: k for k, v in spec.json_fields.items()}
    out: Row = {}
    for name in _columns(spec):
        v = getattr(obj, name)
        if name in json_cols:
            out[json_cols[name]] = json.loads(v) if v else []
            continue
        if isinstance(v, (datetime, date)):
            v = v.isoformat()
        out[name] = v
    return out


def dict_to_values(spec: TableSpec, data: Mapping[str, Any], *, for_update: bool = False) -> dict[str, Any]:
    cols = _columns(spec)
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in spec.json_fields:
            values[spec.json_fields[key]] = json.dumps(list(value or []), ensure_ascii=False)
            continue
        if key in _SERVER_COLUMNS:
            continue
        if key not in cols or key in spec.json_fields.values():
            raise ValidationError(f"Unknown column {key!r} for {spec.name}")
        if key == "id" and for_update:
            continue
        values[key] = _coerce(cols[key], value)
    return values


class SqlEntityStore:
    """
    The entity store backed by SQLAlchemy. Row visibility follows the acting
    principal (None = system caller, sees everything). Every write commits,
    is appended to the change log, and is then published to subscribers.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        *,
        db: Optional[Session] = None,
        principal: Optional[Principal] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        if session_factory is None and db is None:
            raise TypeError("SqlEntityStore requires session_factory=... OR db=...")
        self._session_factory = session_factory
        self._db = db
        self.principal = principal
        self.feed = feed or ChangeFeed()

    def as_principal(self, principal: Optional[Principal]) -> "SqlEntityStore":
        return SqlEntityStore(self._session_factory, db=self._db, principal=principal, feed=self.feed)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._db is not None:
            yield self._db
            return
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    # -------------------------
    # visibility
    # -------------------------
    def _visibility(self, db: Session, spec: TableSpec) -> list[Any]:
        p = self.principal
        if p is None or p.sees_all_properties:
            return []
        model = spec.model
        if spec.name == "properties":
            visible = visible_property_ids(db, p) or set()
            return [model.id.in_(sorted(visible))]
        if spec.property_scoped:
            visible = visible_property_ids(db, p) or set()
            return [or_(model.property_id.is_(None), model.property_id.in_(sorted(visible)))]
        if spec.owner_column:
            return [getattr(model, spec.owner_column) == p.user_id]
        return []

    def _check_write(self, db: Session, spec: TableSpec, values: Mapping[str, Any]) -> None:
        p = self.principal
        if p is None:
            return
        if spec.write_role and not p.has_role(spec.write_role):
            raise PermissionDeniedError(f"Requires role >= {spec.write_role} to modify {spec.name}")
        if spec.property_scoped and values.get("property_id") is not None:
            visible = visible_property_ids(db, p)
            if visible is not None and values["property_id"] not in visible:
                raise PermissionDeniedError("Property not accessible", detail={"property_id": values["property_id"]})

    def _get_visible(self, db: Session, spec: TableSpec, row_id: str) -> Any:
        stmt = select(spec.model).where(spec.model.id == row_id, *self._visibility(db, spec))
        obj = db.scalar(stmt)
        if obj is None:
            raise NotFoundError(f"{spec.name} row not found", detail={"table": spec.name, "id": row_id})
        return obj

    # -------------------------
    # EntityStore
    # -------------------------
    def list(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        spec = table_spec(table)
        cols = _columns(spec)
        model = spec.model

        stmt = select(model)
        for key, value in (filters or {}).items():
            if key not in cols or key in spec.json_fields.values():
                raise ValidationError(f"Cannot filter {spec.name} by {key!r}")
            col = getattr(model, key)
            if value is None:
                stmt = stmt.where(col.is_(None))
            elif isinstance(value, (list, tuple, set)):
                stmt = stmt.where(col.in_([_coerce(cols[key], v) for v in value]))
            else:
                stmt = stmt.where(col == _coerce(cols[key], value))

        if order_by:
            desc = order_by.startswith("-")
            name = order_by.lstrip("-")
            if name not in cols:
                raise ValidationError(f"Cannot order {spec.name} by {name!r}")
            col = getattr(model, name)
            stmt = stmt.order_by(col.desc() if desc else col.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))

        try:
            with self._session() as db:
                stmt = stmt.where(*self._visibility(db, spec))
                return [row_to_dict(spec, o) for o in db.scalars(stmt).all()]
        except SQLAlchemyError as e:
            log.exception("entity list failed", extra={"table": table})
            raise EntityStoreError(f"Failed to list {table}") from e

    def get(self, table: str, row_id: str) -> Row:
        spec = table_spec(table)
        try:
            with self._session() as db:
                return row_to_dict(spec, self._get_visible(db, spec, row_id))
        except SQLAlchemyError as e:
            raise EntityStoreError(f"Failed to read {table}") from e

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        spec = table_spec(table)
        values = dict_to_values(spec, row)
        try:
            with self._session() as db:
                self._check_write(db, spec, values)
                obj = spec.model(**values)
                db.add(obj)
                db.flush()
                out = row_to_dict(spec, obj)
                change = self.feed.record(db, table=table, action=INSERT, row_id=str(obj.id), row=out)
                side = self._side_changes(db, spec, out)
                db.commit()
                db.refresh(obj)
                out = row_to_dict(spec, obj)
        except SQLAlchemyError as e:
            self._rollback()
            log.exception("entity insert failed", extra={"table": table})
            raise EntityStoreError(f"Failed to insert into {table}") from e
        self.feed.publish(Change(table=table, action=INSERT, row_id=out["id"], row=out, id=change.id, created_at=change.created_at))
        self._publish(side)
        return out

    def update(self, table: str, row_id: str, patch: Mapping[str, Any]) -> Row:
        spec = table_spec(table)
        values = dict_to_values(spec, patch, for_update=True)
        try:
            with self._session() as db:
                obj = self._get_visible(db, spec, row_id)
                self._check_write(db, spec, values)
                before = row_to_dict(spec, obj)
                previous = None
                if spec.property_scoped and "property_id" in values:
                    previous = {"property_id": before.get("property_id")}
                for k, v in values.items():
                    setattr(obj, k, v)
                db.flush()
                out = row_to_dict(spec, obj)
                change = self.feed.record(
                    db, table=table, action=UPDATE, row_id=str(row_id), row=out, previous=previous
                )
                side = self._side_changes(db, spec, before, out)
                db.commit()
                db.refresh(obj)
                out = row_to_dict(spec, obj)
        except SQLAlchemyError as e:
            self._rollback()
            log.exception("entity update failed", extra={"table": table, "row_id": row_id})
            raise EntityStoreError(f"Failed to update {table}") from e
        self.feed.publish(Change(table=table, action=UPDATE, row_id=str(row_id), row=out, id=change.id, created_at=change.created_at))
        self._publish(side)
        return out

    def delete(self, table: str, row_id: str) -> None:
        spec = table_spec(table)
        try:
            with self._session() as db:
                obj = self._get_visible(db, spec, row_id)
                self._check_write(db, spec, {})
                before = row_to_dict(spec, obj)
                db.delete(obj)
                change = self.feed.record(db, table=table, action=DELETE, row_id=str(row_id), row=before)
                side = self._side_changes(db, spec, before)
                db.commit()
        except SQLAlchemyError as e:
            self._rollback()
            log.exception("entity delete failed", extra={"table": table, "row_id": row_id})
            raise EntityStoreError(f"Failed to delete from {table}") from e
        self.feed.publish(change)
        self._publish(side)

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        table_spec(table)
        return self.feed.subscribe(table, callback)

    def _side_changes(self, db: Session, spec: TableSpec, *rows: Row) -> list[Change]:
        """
        A property assignment changes which properties its user can see, so
        that user alone is also told the property changed.
        """
        if spec.name != "property_assignments":
            return []
        out: list[Change] = []
        seen: set[tuple[str, str]] = set()
        for r in rows:
            key = (str(r["property_id"]), str(r["user_id"]))
            if key in seen:
                continue
            seen.add(key)
            out.append(self.feed.record(db, table="properties", action=UPDATE, row_id=key[0], audience=key[1]))
        return out

    def _publish(self, changes: list[Change]) -> None:
        for c in changes:
            self.feed.publish(c)

    def _rollback(self) -> None:
        if self._db is not None:
            self._db.rollback()


def list_scoped(
    store: EntityStore,
    table: str,
    scope: PropertyScope,
    *,
    filters: Optional[Mapping[str, Any]] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Row]:
    """EntityStore.list narrowed by a property scope. An empty scope lists nothing."""
    if scope.is_empty:
        return []
    merged = dict(filters or {})
    merged.update(scope.as_filter() or {})
    return store.list(table, merged or None, order_by=order_by, limit=limit)
