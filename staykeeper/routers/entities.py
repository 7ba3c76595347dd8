# staykeeper/routers/entities.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from ..deps import get_store
from ..services.entity_store import SqlEntityStore

router = APIRouter(prefix="/entities", tags=["entities"])

_RESERVED = ("order", "limit")


def _filters(request: Request) -> dict[str, Any]:
    """Every query parameter except order/limit is an equality filter; "null" is IS NULL."""
    out: dict[str, Any] = {}
    for k, v in request.query_params.multi_items():
        if k in _RESERVED:
            continue
        value = None if v == "null" else v
        if k in out:
            prev = out[k]
            out[k] = [*prev, value] if isinstance(prev, list) else [prev, value]
        else:
            out[k] = value
    return out


@router.get("/{table}", response_model=list[dict])
def list_rows(table: str, request: Request, store: SqlEntityStore = Depends(get_store)):
    limit = request.query_params.get("limit")
    return store.list(
        table,
        _filters(request) or None,
        order_by=request.query_params.get("order") or None,
        limit=int(limit) if limit else None,
    )


@router.post("/{table}", response_model=dict)
def insert_row(table: str, row: dict = Body(...), store: SqlEntityStore = Depends(get_store)):
    return store.insert(table, row)


@router.get("/{table}/{row_id}", response_model=dict)
def get_row(table: str, row_id: str, store: SqlEntityStore = Depends(get_store)):
    return store.get(table, row_id)


@router.patch("/{table}/{row_id}", response_model=dict)
def update_row(table: str, row_id: str, patch: dict = Body(...), store: SqlEntityStore = Depends(get_store)):
    return store.update(table, row_id, patch)


@router.delete("/{table}/{row_id}", response_model=dict)
def delete_row(table: str, row_id: str, store: SqlEntityStore = Depends(get_store)):
    store.delete(table, row_id)
    return {"ok": True, "id": row_id}
