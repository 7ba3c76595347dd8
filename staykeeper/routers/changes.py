# staykeeper/routers/changes.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..config import settings
from ..db import get_db
from ..deps import get_feed
from ..schemas import ChangePageOut
from ..services.access import visible_property_ids
from ..services.change_feed import DELETE, Change, ChangeFeed
from ..services.entity_store import TABLES

router = APIRouter(prefix="/changes", tags=["changes"])


def _stripped(change: Change) -> dict[str, Any]:
    return {**change.to_dict(), "row": None}


def _present(change: Change, p: Principal, visible: Optional[set[str]]) -> Optional[dict[str, Any]]:
    """
    What the caller receives for one change: the full event, the event with
    its row removed, or nothing.

    A stripped event tells a client that a row it may be holding is gone from
    its view (deleted, or moved to a property it cannot see) without
    revealing the row's new contents.
    """
    if change.audience is not None:
        return _stripped(change) if change.audience == p.user_id else None
    if visible is None:
        return change.to_dict()

    spec = TABLES.get(change.table)
    if change.table == "properties":
        if change.row_id in visible:
            return change.to_dict()
        # assignments cascade away with the property, so the caller can no
        # longer be matched against it
        return _stripped(change) if change.action == DELETE else None
    if spec is not None and spec.property_scoped:
        pid = (change.row or {}).get("property_id")
        if pid is None or pid in visible:
            return change.to_dict()
        prev = change.previous or {}
        if "property_id" in prev and (prev["property_id"] is None or prev["property_id"] in visible):
            return _stripped(change)
        return None
    if spec is not None and spec.owner_column:
        if (change.row or {}).get(spec.owner_column) == p.user_id:
            return change.to_dict()
        return None
    return change.to_dict()


@router.get("", response_model=ChangePageOut)
def list_changes(
    after: int = Query(default=0, ge=0),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    table: Optional[list[str]] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    change_feed: ChangeFeed = Depends(get_feed),
):
    """
    Changes with id > after, oldest first. The cursor advances past events
    the caller may not see, so clients never re-read them.
    """
    page = change_feed.since(
        db,
        after=after,
        limit=limit or settings.change_feed_page_size,
        tables=set(table) if table else None,
    )
    visible = visible_property_ids(db, p)
    cursor = page[-1].id if page else after
    out = [_present(c, p, visible) for c in page]
    return {"changes": [c for c in out if c is not None], "cursor": cursor}
