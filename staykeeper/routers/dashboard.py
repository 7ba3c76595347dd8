# staykeeper/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..deps import get_scope
from ..domain.scoping import PropertyScope
from ..schemas import DashboardStatsOut
from ..services.dashboard import dashboard_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStatsOut)
def stats(
    scope: PropertyScope = Depends(get_scope),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return dashboard_stats(db, p, scope)
