# staykeeper/routers/inspections.py
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import Principal, get_principal
from ..config import settings
from ..deps import get_scope, get_store
from ..domain.checklists import ActiveItem
from ..domain.schedule import upcoming_inspections
from ..domain.scoping import PropertyScope
from ..schemas import InspectionRecordCreate, InspectionRecordOut, UpcomingInspectionOut
from ..services.entity_store import SqlEntityStore, list_scoped
from ..services.inspections import assigned_template_ids, inspection_record_row

router = APIRouter(prefix="/inspections", tags=["inspections"])


@router.get("", response_model=list[InspectionRecordOut])
def inspection_history(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
):
    """Saved inspections, newest first."""
    return list_scoped(store, "inspection_records", scope, order_by="-inspection_date", limit=limit)


@router.post("", response_model=InspectionRecordOut)
def create_inspection(
    payload: InspectionRecordCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    if not payload.items:
        raise HTTPException(status_code=400, detail="An inspection needs at least one item")
    template = store.get("inspection_templates", payload.template_id)
    row = inspection_record_row(
        template,
        [ActiveItem(**it.model_dump()) for it in payload.items],
        inspection_date=payload.inspection_date,
        performed_by=payload.performed_by,
        entered_by=p.user_id,
        next_due_date=payload.next_due_date,
    )
    return store.insert("inspection_records", row)


@router.get("/upcoming", response_model=list[UpcomingInspectionOut])
def upcoming(
    days: int = Query(default=settings.upcoming_window_days, ge=0, le=365),
    include_overdue: bool = Query(default=True),
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    """
    Template and record due dates within `days` (overdue ones too unless
    turned off). A caller with template assignments sees only those.
    """
    if scope.is_empty:
        return []
    rows = upcoming_inspections(
        store.list("inspection_templates"),
        store.list("inspection_records"),
        store.list("properties"),
        scope=scope,
        today=date.today(),
        assigned_template_ids=assigned_template_ids(store, p.user_id),
    )
    out = []
    for u in rows:
        if u.days_until_due > days or (u.days_until_due < 0 and not include_overdue):
            continue
        out.append({**asdict(u), "band": u.band})
    return out


@router.get("/{record_id}", response_model=InspectionRecordOut)
def get_inspection(record_id: str, store: SqlEntityStore = Depends(get_store)):
    return store.get("inspection_records", record_id)


@router.delete("/{record_id}", response_model=dict)
def delete_inspection(record_id: str, store: SqlEntityStore = Depends(get_store)):
    store.delete("inspection_records", record_id)
    return {"ok": True, "id": record_id}
