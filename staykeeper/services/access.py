# staykeeper/services/access.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import PropertyAssignment


def visible_property_ids(db: Session, principal: Optional[Principal]) -> Optional[set[str]]:
    """None means every property (system callers, owners, managers)."""
    if principal is None or principal.sees_all_properties:
        return None
    rows = db.scalars(
        select(PropertyAssignment.property_id).where(PropertyAssignment.user_id == principal.user_id)
    ).all()
    return {str(r) for r in rows}
