# staykeeper/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import Principal, get_principal
from ..deps import get_store
from ..schemas import PropertyCreate, PropertyOut, PropertyUpdate
from ..services.entity_store import SqlEntityStore

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("", response_model=list[PropertyOut])
def list_properties(store: SqlEntityStore = Depends(get_store)):
    """Properties the caller can see, by name."""
    return store.list("properties", order_by="name")


@router.post("", response_model=PropertyOut)
def create_property(
    payload: PropertyCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    return store.insert("properties", {**payload.model_dump(), "created_by": p.user_id})


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: str, store: SqlEntityStore = Depends(get_store)):
    return store.get("properties", property_id)


@router.patch("/{property_id}", response_model=PropertyOut)
def update_property(property_id: str, payload: PropertyUpdate, store: SqlEntityStore = Depends(get_store)):
    return store.update("properties", property_id, payload.model_dump(exclude_unset=True))


@router.delete("/{property_id}", response_model=dict)
def delete_property(property_id: str, store: SqlEntityStore = Depends(get_store)):
    # dependent rows keep existing with property_id nulled (FK ON DELETE SET NULL)
    store.delete("properties", property_id)
    return {"ok": True, "id": property_id}
