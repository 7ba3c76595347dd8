# tests/test_entity_store.py
from __future__ import annotations

import pytest

from staykeeper.auth import Principal
from staykeeper.errors import NotFoundError, PermissionDeniedError, ValidationError
from staykeeper.services.change_feed import DELETE, INSERT, UPDATE


def _user(store, email: str, role: str) -> Principal:
    u = store.insert("app_users", {"email": email, "full_name": email.split("@")[0]})
    store.insert("user_roles", {"user_id": u["id"], "role": role})
    return Principal(user_id=u["id"], email=email, roles=(role,))


def test_insert_list_update_delete(store):
    p = store.insert("properties", {"name": "Cabin", "city": "Marquette"})
    assert p["id"]
    assert p["created_at"]

    t = store.insert(
        "inspection_templates",
        {"name": "Monthly", "items": [{"id": "x", "description": "Check", "notes": ""}], "property_id": p["id"]},
    )
    assert t["items"][0]["description"] == "Check"
    assert "items_json" not in t

    t2 = store.update("inspection_templates", t["id"], {"next_occurrence": "2024-06-01"})
    assert t2["next_occurrence"] == "2024-06-01"

    store.delete("inspection_templates", t["id"])
    assert store.list("inspection_templates") == []


def test_filters_order_and_null(store):
    p = store.insert("properties", {"name": "Cabin"})
    store.insert("inventory_items", {"name": "Soap", "property_id": p["id"]})
    store.insert("inventory_items", {"name": "Brooms", "property_id": None})
    store.insert("inventory_items", {"name": "Towels", "property_id": None})

    assert [r["name"] for r in store.list("inventory_items", {"property_id": None}, order_by="name")] == [
        "Brooms",
        "Towels",
    ]
    assert [r["name"] for r in store.list("inventory_items", order_by="-name", limit=2)] == ["Towels", "Soap"]
    assert store.list("inventory_items", {"restock_requested": "false"}, limit=1)


def test_unknown_table_and_column(store):
    with pytest.raises(ValidationError):
        store.list("nope")
    with pytest.raises(ValidationError):
        store.insert("properties", {"name": "x", "bogus": 1})
    with pytest.raises(ValidationError):
        store.list("properties", {"bogus": 1})


def test_missing_row_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.update("properties", "missing", {"name": "x"})
    with pytest.raises(NotFoundError):
        store.delete("properties", "missing")


def test_writes_are_logged_and_published(store, feed, session_factory):
    seen = []
    store.subscribe("properties", seen.append)

    p = store.insert("properties", {"name": "Cabin"})
    store.update("properties", p["id"], {"name": "Cabin 2"})
    store.delete("properties", p["id"])

    assert [c.action for c in seen] == [INSERT, UPDATE, DELETE]
    assert seen[1].row["name"] == "Cabin 2"

    db = session_factory()
    try:
        assert [c.action for c in feed.since(db)] == [INSERT, UPDATE, DELETE]
    finally:
        db.close()


def test_deleting_property_nulls_dependents(store):
    p = store.insert("properties", {"name": "Cabin"})
    item = store.insert("inventory_items", {"name": "Soap", "property_id": p["id"]})
    store.delete("properties", p["id"])
    assert store.get("inventory_items", item["id"])["property_id"] is None


def test_cleaner_sees_only_assigned_properties(store):
    owner = _user(store, "owner@x.test", "owner")
    cleaner = _user(store, "cleaner@x.test", "cleaner")
    a = store.insert("properties", {"name": "A"})
    b = store.insert("properties", {"name": "B"})
    store.insert("property_assignments", {"user_id": cleaner.user_id, "property_id": a["id"]})
    store.insert("inventory_items", {"name": "in A", "property_id": a["id"]})
    store.insert("inventory_items", {"name": "in B", "property_id": b["id"]})
    store.insert("inventory_items", {"name": "floating", "property_id": None})

    as_cleaner = store.as_principal(cleaner)
    assert [p["name"] for p in as_cleaner.list("properties")] == ["A"]
    assert sorted(i["name"] for i in as_cleaner.list("inventory_items")) == ["floating", "in A"]
    with pytest.raises(NotFoundError):
        as_cleaner.get("properties", b["id"])

    as_owner = store.as_principal(owner)
    assert len(as_owner.list("properties")) == 2
    assert len(as_owner.list("inventory_items")) == 3


def test_cleaner_cannot_write_outside_scope(store):
    cleaner = _user(store, "cleaner@x.test", "cleaner")
    a = store.insert("properties", {"name": "A"})
    as_cleaner = store.as_principal(cleaner)

    with pytest.raises(PermissionDeniedError):
        as_cleaner.insert("properties", {"name": "Mine now"})
    with pytest.raises(PermissionDeniedError):
        as_cleaner.insert("inventory_items", {"name": "Soap", "property_id": a["id"]})
    with pytest.raises(PermissionDeniedError):
        as_cleaner.insert("user_roles", {"user_id": cleaner.user_id, "role": "owner"})

    # unassigned rows are open to everyone
    assert as_cleaner.insert("inventory_items", {"name": "Shared", "property_id": None})["name"] == "Shared"


def test_assignment_writes_notify_the_assignee(store, feed, session_factory):
    cleaner = _user(store, "cleaner@x.test", "cleaner")
    p = store.insert("properties", {"name": "A"})
    seen = []
    store.subscribe("properties", seen.append)

    a = store.insert("property_assignments", {"user_id": cleaner.user_id, "property_id": p["id"]})
    store.delete("property_assignments", a["id"])

    assert [(c.action, c.row_id, c.audience, c.row) for c in seen] == [
        (UPDATE, p["id"], cleaner.user_id, None),
        (UPDATE, p["id"], cleaner.user_id, None),
    ]
    db = session_factory()
    try:
        logged = feed.since(db, tables={"properties"})
        assert [c.audience for c in logged] == [None, cleaner.user_id, cleaner.user_id]
    finally:
        db.close()


def test_moving_scoped_row_logs_previous_property(store, feed, session_factory):
    a = store.insert("properties", {"name": "A"})
    b = store.insert("properties", {"name": "B"})
    item = store.insert("inventory_items", {"name": "Soap", "property_id": a["id"]})
    store.update("inventory_items", item["id"], {"property_id": b["id"]})
    store.update("inventory_items", item["id"], {"name": "Bar soap"})

    db = session_factory()
    try:
        logged = feed.since(db, tables={"inventory_items"})
    finally:
        db.close()
    assert [c.previous for c in logged] == [None, {"property_id": a["id"]}, None]
    assert logged[1].row["property_id"] == b["id"]
