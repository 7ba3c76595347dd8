# staykeeper/routers/templates.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import Principal, get_principal, require_manager
from ..deps import get_scope, get_store
from ..domain.checklists import ActiveItem, items_from_json, reconcile
from ..domain.scoping import PropertyScope
from ..schemas import (
    ActiveItemIO,
    InspectionAssignmentIn,
    InspectionAssignmentOut,
    ReconcileIn,
    TemplateCreate,
    TemplateOut,
    TemplateUpdate,
)
from ..services.entity_store import SqlEntityStore, list_scoped
from ..services.inspections import (
    guard_template_delete,
    guard_template_update,
    seed_predefined_templates,
    validate_template_changes,
)

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[TemplateOut])
def list_templates(scope: PropertyScope = Depends(get_scope), store: SqlEntityStore = Depends(get_store)):
    return list_scoped(store, "inspection_templates", scope, order_by="name")


@router.post("", response_model=TemplateOut)
def create_template(
    payload: TemplateCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    row = validate_template_changes(payload.model_dump())
    row["is_predefined"] = False
    row["created_by"] = p.user_id
    return store.insert("inspection_templates", row)


@router.post("/seed", response_model=list[TemplateOut])
def seed_templates(
    property_id: Optional[str] = Query(default=None),
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    """Default Per Visit / Monthly / Quarterly / Yearly templates that are missing by name."""
    return seed_predefined_templates(store, property_id, created_by=p.user_id)


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(template_id: str, store: SqlEntityStore = Depends(get_store)):
    return store.get("inspection_templates", template_id)


@router.patch("/{template_id}", response_model=TemplateOut)
def update_template(template_id: str, payload: TemplateUpdate, store: SqlEntityStore = Depends(get_store)):
    row = validate_template_changes(payload.model_dump(exclude_unset=True))
    guard_template_update(store.get("inspection_templates", template_id), row)
    return store.update("inspection_templates", template_id, row)


@router.delete("/{template_id}", response_model=dict)
def delete_template(template_id: str, store: SqlEntityStore = Depends(get_store)):
    guard_template_delete(store.get("inspection_templates", template_id))
    store.delete("inspection_templates", template_id)
    return {"ok": True, "id": template_id}


@router.post("/{template_id}/reconcile", response_model=list[ActiveItemIO])
def reconcile_active(template_id: str, payload: ReconcileIn, store: SqlEntityStore = Depends(get_store)):
    """Bring an in-progress checklist in line with the template's current items."""
    template = store.get("inspection_templates", template_id)
    active = [ActiveItem(**it.model_dump()) for it in payload.items]
    return [it.to_dict() for it in reconcile(active, items_from_json(template["items"]))]


# -----------------------------
# Assignments
# -----------------------------
@router.get("/{template_id}/assignments", response_model=list[InspectionAssignmentOut])
def list_assignments(template_id: str, store: SqlEntityStore = Depends(get_store)):
    """Managers see every assignee; everyone else only their own assignment."""
    store.get("inspection_templates", template_id)
    return store.list("inspection_assignments", {"template_id": template_id}, order_by="created_at")


@router.post("/{template_id}/assignments", response_model=InspectionAssignmentOut)
def assign_template(
    template_id: str,
    payload: InspectionAssignmentIn,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(require_manager),
):
    store.get("inspection_templates", template_id)
    store.get("app_users", payload.user_id)
    if store.list("inspection_assignments", {"template_id": template_id, "assigned_to": payload.user_id}):
        raise HTTPException(status_code=409, detail="This template is already assigned to this user.")
    return store.insert(
        "inspection_assignments",
        {"template_id": template_id, "assigned_to": payload.user_id, "assigned_by": p.user_id},
    )


@router.delete("/{template_id}/assignments/{user_id}", response_model=dict)
def unassign_template(
    template_id: str,
    user_id: str,
    store: SqlEntityStore = Depends(get_store),
    _m=Depends(require_manager),
):
    removed = 0
    for a in store.list("inspection_assignments", {"template_id": template_id, "assigned_to": user_id}):
        store.delete("inspection_assignments", str(a["id"]))
        removed += 1
    return {"ok": True, "removed": removed}
