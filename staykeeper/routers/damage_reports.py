# staykeeper/routers/damage_reports.py
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import Principal, get_principal
from ..deps import get_scope, get_store
from ..domain.claims import CLAIM_STATUSES, compute_claim_deadline, track_claim
from ..domain.scoping import PropertyScope
from ..schemas import ClaimTrackingOut, DamageReportCreate, DamageReportOut, DamageReportUpdate
from ..services.entity_store import SqlEntityStore, list_scoped

router = APIRouter(prefix="/damage-reports", tags=["damage-reports"])

SEVERITIES = ("minor", "moderate", "severe")


def _as_date(v: Any) -> Optional[date]:
    if v is None or isinstance(v, date):
        return v
    return date.fromisoformat(str(v)[:10])


def _check(row: dict[str, Any]) -> None:
    if row.get("severity") is not None and row["severity"] not in SEVERITIES:
        raise HTTPException(status_code=400, detail=f"severity must be one of {', '.join(SEVERITIES)}")
    if row.get("claim_status") is not None and row["claim_status"] not in CLAIM_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown claim_status: {row['claim_status']}")


@router.get("", response_model=list[DamageReportOut])
def list_damage_reports(
    status: Optional[str] = Query(default=None),
    open_only: bool = Query(default=False),
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
):
    filters = {"status": status} if status else None
    rows = list_scoped(store, "damage_reports", scope, filters=filters, order_by="-damage_date")
    if open_only:
        rows = [r for r in rows if r["status"] not in ("completed", "resolved")]
    return rows


@router.post("", response_model=DamageReportOut)
def create_damage_report(
    payload: DamageReportCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    row = payload.model_dump()
    _check(row)
    if row["damage_date"] is None:
        row["damage_date"] = date.today()
    # the platform window is stored at filing time so later rule changes don't move it
    if row["check_out_date"] is not None and row["claim_deadline"] is None:
        row["claim_deadline"] = compute_claim_deadline(row["check_out_date"], row["booking_platform"])
    row["reported_by"] = p.user_id
    return store.insert("damage_reports", row)


@router.get("/{report_id}", response_model=DamageReportOut)
def get_damage_report(report_id: str, store: SqlEntityStore = Depends(get_store)):
    return store.get("damage_reports", report_id)


@router.patch("/{report_id}", response_model=DamageReportOut)
def update_damage_report(report_id: str, payload: DamageReportUpdate, store: SqlEntityStore = Depends(get_store)):
    patch = payload.model_dump(exclude_unset=True)
    _check(patch)
    return store.update("damage_reports", report_id, patch)


@router.delete("/{report_id}", response_model=dict)
def delete_damage_report(report_id: str, store: SqlEntityStore = Depends(get_store)):
    store.delete("damage_reports", report_id)
    return {"ok": True, "id": report_id}


@router.get("/{report_id}/claim", response_model=Optional[ClaimTrackingOut])
def claim_tracking(report_id: str, store: SqlEntityStore = Depends(get_store)):
    """Deadline countdown, or the filed status once a claim is filed. null without a checkout date."""
    r = store.get("damage_reports", report_id)
    t = track_claim(
        check_out_date=_as_date(r.get("check_out_date")),
        platform=r.get("booking_platform"),
        claim_status=r.get("claim_status"),
        claim_deadline=_as_date(r.get("claim_deadline")),
        today=date.today(),
    )
    return asdict(t) if t else None
