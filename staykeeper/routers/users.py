# staykeeper/routers/users.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..auth import ROLES, Principal, get_principal, require_manager, require_owner
from ..deps import get_store
from ..schemas import AssignmentIn, RoleIn, UserOut
from ..services.entity_store import SqlEntityStore

router = APIRouter(prefix="/users", tags=["users"])


def _user_view(store: SqlEntityStore, user: dict[str, Any]) -> dict[str, Any]:
    uid = str(user["id"])
    return {
        **user,
        "roles": sorted(str(r["role"]) for r in store.list("user_roles", {"user_id": uid})),
        "property_ids": sorted(str(a["property_id"]) for a in store.list("property_assignments", {"user_id": uid})),
    }


@router.get("/me", response_model=dict)
def me(p: Principal = Depends(get_principal)):
    return {"user_id": p.user_id, "email": p.email, "full_name": p.full_name, "roles": list(p.roles), "role": p.role}


@router.get("", response_model=list[UserOut])
def list_users(store: SqlEntityStore = Depends(get_store), _m=Depends(require_manager)):
    return [_user_view(store, u) for u in store.list("app_users", order_by="email")]


@router.post("/{user_id}/roles", response_model=UserOut)
def add_role(user_id: str, payload: RoleIn, store: SqlEntityStore = Depends(get_store), _o=Depends(require_owner)):
    role = payload.role.strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"role must be one of {', '.join(ROLES)}")
    user = store.get("app_users", user_id)
    if not store.list("user_roles", {"user_id": user_id, "role": role}):
        store.insert("user_roles", {"user_id": user_id, "role": role})
    return _user_view(store, user)


@router.delete("/{user_id}/roles/{role}", response_model=UserOut)
def remove_role(
    user_id: str,
    role: str,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(require_owner),
):
    if user_id == p.user_id and role == "owner":
        raise HTTPException(status_code=400, detail="You cannot remove your own owner role")
    user = store.get("app_users", user_id)
    for r in store.list("user_roles", {"user_id": user_id, "role": role}):
        store.delete("user_roles", str(r["id"]))
    return _user_view(store, user)


@router.post("/{user_id}/properties", response_model=UserOut)
def assign_property(
    user_id: str,
    payload: AssignmentIn,
    store: SqlEntityStore = Depends(get_store),
    _o=Depends(require_owner),
):
    user = store.get("app_users", user_id)
    store.get("properties", payload.property_id)
    if not store.list("property_assignments", {"user_id": user_id, "property_id": payload.property_id}):
        store.insert("property_assignments", {"user_id": user_id, "property_id": payload.property_id})
    return _user_view(store, user)


@router.delete("/{user_id}/properties/{property_id}", response_model=UserOut)
def unassign_property(
    user_id: str,
    property_id: str,
    store: SqlEntityStore = Depends(get_store),
    _o=Depends(require_owner),
):
    user = store.get("app_users", user_id)
    for a in store.list("property_assignments", {"user_id": user_id, "property_id": property_id}):
        store.delete("property_assignments", str(a["id"]))
    return _user_view(store, user)
