# staykeeper/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from .auth import Principal, get_principal
from .db import get_db
from .domain.scoping import PropertyScope
from .services.change_feed import ChangeFeed, feed as default_feed
from .services.entity_store import SqlEntityStore


def get_feed(request: Request) -> ChangeFeed:
    return getattr(request.app.state, "feed", None) or default_feed


def get_store(
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
    change_feed: ChangeFeed = Depends(get_feed),
) -> SqlEntityStore:
    """Entity store bound to the request session and acting as the caller."""
    return SqlEntityStore(db=db, principal=p, feed=change_feed)


def get_scope(
    mode: Optional[str] = Query(default=None, description="all|unassigned|property"),
    property_id: Optional[str] = Query(default=None),
) -> PropertyScope:
    return PropertyScope.from_params(mode, property_id)
