# staykeeper/services/dashboard.py
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.scoping import PropertyScope, scope_clause
from ..models import DamageReport, InspectionAssignment, InspectionRecord, InspectionTemplate, InventoryItem
from .access import visible_property_ids

CLOSED_DAMAGE_STATUSES = ("completed", "resolved")


def _where(model: Any, visible: Optional[set[str]], scope: PropertyScope) -> list[Any]:
    out = []
    if visible is not None:
        out.append(or_(model.property_id.is_(None), model.property_id.in_(sorted(visible))))
    clause = scope_clause(model, scope)
    if clause is not None:
        out.append(clause)
    return out


def _assigned_template_ids(db: Session, principal: Optional[Principal]) -> Optional[set[str]]:
    if principal is None or not principal.user_id:
        return None
    ids = set(
        db.scalars(
            select(InspectionAssignment.template_id).where(InspectionAssignment.assigned_to == principal.user_id)
        ).all()
    )
    return ids or None


def dashboard_stats(
    db: Session,
    principal: Optional[Principal],
    scope: PropertyScope,
    today: Optional[date] = None,
) -> dict[str, int]:
    """
    Top cards: open damage reports, inspections due in the next week
    (template next_occurrence plus record next_due_date), low-stock items.

    Inspections are narrowed to the caller's assigned templates when they
    have any.
    """
    today = today or date.today()
    horizon = today + timedelta(days=settings.upcoming_window_days)
    visible = visible_property_ids(db, principal)
    assigned = _assigned_template_ids(db, principal)
    template_filter: list[Any] = []
    record_filter: list[Any] = []
    if assigned:
        template_filter.append(InspectionTemplate.id.in_(sorted(assigned)))
        record_filter.append(
            or_(InspectionRecord.template_id.is_(None), InspectionRecord.template_id.in_(sorted(assigned)))
        )

    open_damage = db.scalar(
        select(func.count(DamageReport.id)).where(
            DamageReport.status.notin_(CLOSED_DAMAGE_STATUSES), *_where(DamageReport, visible, scope)
        )
    )
    due_templates = db.scalar(
        select(func.count(InspectionTemplate.id)).where(
            InspectionTemplate.next_occurrence >= today,
            InspectionTemplate.next_occurrence <= horizon,
            *_where(InspectionTemplate, visible, scope),
            *template_filter,
        )
    )
    due_records = db.scalar(
        select(func.count(InspectionRecord.id)).where(
            InspectionRecord.next_due_date >= today,
            InspectionRecord.next_due_date <= horizon,
            *_where(InspectionRecord, visible, scope),
            *record_filter,
        )
    )
    low_stock = db.scalar(
        select(func.count(InventoryItem.id)).where(
            InventoryItem.current_quantity <= InventoryItem.restock_threshold,
            *_where(InventoryItem, visible, scope),
        )
    )

    return {
        "open_damage_reports": int(open_damage or 0),
        "upcoming_inspections": int(due_templates or 0) + int(due_records or 0),
        "low_stock_items": int(low_stock or 0),
    }
