# staykeeper/services/change_feed.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import ChangeEvent

log = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def _dumps(v: Any) -> str:
    try:
        return json.dumps(v, default=str)
    except (TypeError, ValueError):
        return "{}"


def _loads(s: Optional[str], default: Any) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except ValueError:
        return default


@dataclass(frozen=True)
class Change:
    table: str
    action: str
    row_id: str
    row: Optional[dict[str, Any]] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    # delivery only, never serialised
    audience: Optional[str] = None
    previous: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "table": self.table,
            "action": self.action,
            "row_id": self.row_id,
            "row": self.row,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Change":
        ts = d.get("created_at")
        return cls(
            id=d.get("id"),
            table=str(d["table"]),
            action=str(d["action"]),
            row_id=str(d["row_id"]),
            row=d.get("row"),
            created_at=datetime.fromisoformat(ts) if ts else None,
        )


ChangeCallback = Callable[[Change], None]


@dataclass(eq=False)
class Subscription:
    registry: "SubscriberRegistry"
    table: str
    callback: ChangeCallback
    active: bool = field(default=True)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.registry._drop(self)


class SubscriberRegistry:
    """Callbacks keyed by table name. A failing callback never stops the others."""

    def __init__(self) -> None:
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        sub = Subscription(registry=self, table=table, callback=callback)
        self._subs.setdefault(table, []).append(sub)
        return sub

    def _drop(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.table) or []
        if sub in subs:
            subs.remove(sub)

    def subscriber_count(self, table: str) -> int:
        return len(self._subs.get(table) or [])

    def publish(self, change: Change) -> None:
        for sub in list(self._subs.get(change.table) or []):
            if not sub.active:
                continue
            try:
                sub.callback(change)
            except Exception:
                log.exception("change subscriber failed", extra={"table": change.table, "row_id": change.row_id})


class ChangeFeed(SubscriberRegistry):
    """
    In-process realtime feed plus a persisted log (change_events) that remote
    clients read by cursor.

    record() adds + flushes only; callers commit, then publish().
    """

    def record(
        self,
        db: Session,
        *,
        table: str,
        action: str,
        row_id: str,
        row: Optional[dict[str, Any]] = None,
        audience: Optional[str] = None,
        previous: Optional[dict[str, Any]] = None,
    ) -> Change:
        ev = ChangeEvent(
            table_name=table,
            action=action,
            row_id=str(row_id),
            payload_json=_dumps(row) if row is not None else None,
            audience=audience,
            previous_json=_dumps(previous) if previous is not None else None,
            created_at=datetime.utcnow(),
        )
        db.add(ev)
        db.flush()
        return Change(
            table=table,
            action=action,
            row_id=str(row_id),
            row=row,
            id=int(ev.id),
            created_at=ev.created_at,
            audience=audience,
            previous=previous,
        )

    def since(
        self,
        db: Session,
        *,
        after: int = 0,
        limit: int = 200,
        tables: Optional[set[str]] = None,
    ) -> list[Change]:
        q = select(ChangeEvent).where(ChangeEvent.id > int(after)).order_by(ChangeEvent.id.asc())
        if tables:
            q = q.where(ChangeEvent.table_name.in_(sorted(tables)))
        rows = db.scalars(q.limit(int(limit))).all()
        return [
            Change(
                id=int(r.id),
                table=str(r.table_name),
                action=str(r.action),
                row_id=str(r.row_id),
                row=_loads(r.payload_json, None),
                created_at=r.created_at,
                audience=r.audience,
                previous=_loads(r.previous_json, None),
            )
            for r in rows
        ]


feed = ChangeFeed()
