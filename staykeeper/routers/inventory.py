# staykeeper/routers/inventory.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from ..auth import Principal, get_principal
from ..config import settings
from ..deps import get_scope, get_store
from ..domain.scoping import PropertyScope
from ..domain.stock import (
    adjust_stock,
    amazon_business_csv,
    group_restock_by_property,
    needs_restock,
    receive_restock,
    stock_status,
    unit_price_from_package,
)
from ..schemas import (
    CategoryCreate,
    CategoryOut,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    RestockGroupOut,
    RestockReceiveIn,
    StockAdjustIn,
)
from ..services.entity_store import SqlEntityStore, list_scoped

router = APIRouter(prefix="/inventory", tags=["inventory"])


def _with_status(row: dict[str, Any]) -> dict[str, Any]:
    row["status"] = stock_status(int(row["current_quantity"]), int(row["restock_threshold"])).value
    return row


# -----------------------------
# Categories
# -----------------------------
@router.get("/categories", response_model=list[CategoryOut])
def list_categories(store: SqlEntityStore = Depends(get_store)):
    return store.list("inventory_categories", order_by="name")


@router.post("/categories", response_model=CategoryOut)
def create_category(
    payload: CategoryCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    existing = [c for c in store.list("inventory_categories") if str(c["name"]).lower() == name.lower()]
    if existing:
        return existing[0]
    return store.insert(
        "inventory_categories",
        {"name": name, "description": payload.description, "is_predefined": False, "created_by": p.user_id},
    )


# -----------------------------
# Items
# -----------------------------
@router.get("/items", response_model=list[InventoryItemOut])
def list_items(
    category_id: Optional[str] = Query(default=None),
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
):
    filters = {"category_id": category_id} if category_id else None
    return [_with_status(r) for r in list_scoped(store, "inventory_items", scope, filters=filters, order_by="name")]


@router.post("/items", response_model=InventoryItemOut)
def create_item(
    payload: InventoryItemCreate,
    store: SqlEntityStore = Depends(get_store),
    p: Principal = Depends(get_principal),
):
    row = payload.model_dump()
    if not row["name"].strip():
        raise HTTPException(status_code=400, detail="Item name is required")
    if row["restock_threshold"] is None:
        row["restock_threshold"] = settings.default_restock_threshold
    if row["reorder_quantity"] is None:
        row["reorder_quantity"] = settings.default_reorder_quantity
    row["unit_price"] = unit_price_from_package(row["cost_per_package"], row["units_per_package"], row["unit_price"])
    row["created_by"] = p.user_id
    return _with_status(store.insert("inventory_items", row))


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
def update_item(item_id: str, payload: InventoryItemUpdate, store: SqlEntityStore = Depends(get_store)):
    patch = payload.model_dump(exclude_unset=True)
    if "cost_per_package" in patch or "units_per_package" in patch:
        current = store.get("inventory_items", item_id)
        cpp = patch.get("cost_per_package", current.get("cost_per_package"))
        upp = patch.get("units_per_package", current.get("units_per_package"))
        derived = unit_price_from_package(cpp, upp)
        if derived is not None:
            patch["unit_price"] = derived
    return _with_status(store.update("inventory_items", item_id, patch))


@router.delete("/items/{item_id}", response_model=dict)
def delete_item(item_id: str, store: SqlEntityStore = Depends(get_store)):
    store.delete("inventory_items", item_id)
    return {"ok": True, "id": item_id}


@router.post("/items/{item_id}/adjust", response_model=InventoryItemOut)
def adjust_item(item_id: str, payload: StockAdjustIn, store: SqlEntityStore = Depends(get_store)):
    """Quick count: +/- delta, clamped at zero; dropping to the threshold flags a restock."""
    item = store.get("inventory_items", item_id)
    adj = adjust_stock(
        int(item["current_quantity"]),
        int(item["restock_threshold"]),
        payload.delta,
        restock_requested=bool(item["restock_requested"]),
    )
    return _with_status(
        store.update(
            "inventory_items",
            item_id,
            {"current_quantity": adj.quantity, "restock_requested": adj.restock_requested},
        )
    )


@router.post("/items/{item_id}/receive", response_model=InventoryItemOut)
def receive_item(item_id: str, payload: RestockReceiveIn, store: SqlEntityStore = Depends(get_store)):
    item = store.get("inventory_items", item_id)
    return _with_status(store.update("inventory_items", item_id, receive_restock(item, payload.quantity)))


# -----------------------------
# Restock
# -----------------------------
@router.get("/restock", response_model=list[RestockGroupOut])
def restock_requests(
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
):
    """Items needing restock grouped by property (unassigned last)."""
    names = {str(p["id"]): str(p["name"]) for p in store.list("properties")}
    groups = group_restock_by_property(list_scoped(store, "inventory_items", scope, order_by="name"))

    out = []
    for key in sorted(groups, key=lambda k: (k == "unassigned", names.get(k, k))):
        out.append(
            {
                "property_id": None if key == "unassigned" else key,
                "property_name": "Unassigned" if key == "unassigned" else names.get(key, "Unknown property"),
                "items": [_with_status(dict(it)) for it in groups[key]],
            }
        )
    return out


@router.get("/restock/export.csv", response_class=PlainTextResponse)
def export_restock_csv(
    scope: PropertyScope = Depends(get_scope),
    store: SqlEntityStore = Depends(get_store),
):
    items = [it for it in list_scoped(store, "inventory_items", scope, order_by="name") if needs_restock(it)]
    property_name = None
    if scope.property_id:
        property_name = str(store.get("properties", scope.property_id)["name"])
    return PlainTextResponse(
        amazon_business_csv(items, property_name=property_name),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="amazon-business-order.csv"'},
    )
