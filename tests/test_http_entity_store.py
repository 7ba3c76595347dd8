# tests/test_http_entity_store.py
from __future__ import annotations

import httpx
import pytest

from staykeeper.clients.entity_api import HttpEntityStore
from staykeeper.errors import EntityStoreError, NotFoundError, PermissionDeniedError
from staykeeper.services.change_feed import DELETE, INSERT, UPDATE
from staykeeper.services.client_storage import InMemoryKeyValueStore
from staykeeper.services.notifications import CollectingNotifier
from staykeeper.services.property_selection import PropertySelectionStore


def _headers(email: str = "owner@demo.local", role: str = "owner") -> dict[str, str]:
    return {"X-User-Email": email, "X-User-Role": role}


def test_crud_over_http(client):
    remote = HttpEntityStore("/api", headers=_headers(), client=client)

    p = remote.insert("properties", {"name": "Cabin"})
    remote.insert("inventory_items", {"name": "Soap", "property_id": None})
    remote.insert("inventory_items", {"name": "Towels", "property_id": p["id"]})

    assert [r["name"] for r in remote.list("properties", order_by="name")] == ["Cabin"]
    assert [r["name"] for r in remote.list("inventory_items", {"property_id": None})] == ["Soap"]

    updated = remote.update("properties", p["id"], {"city": "Marquette"})
    assert updated["city"] == "Marquette"

    remote.delete("properties", p["id"])
    assert remote.list("properties") == []


def test_error_mapping(client):
    remote = HttpEntityStore("/api", headers=_headers(), client=client)
    with pytest.raises(NotFoundError):
        remote.update("properties", "missing", {"name": "x"})

    cleaner = HttpEntityStore("/api", headers=_headers("cleaner@demo.local", "cleaner"), client=client)
    with pytest.raises(PermissionDeniedError):
        cleaner.insert("properties", {"name": "Nope"})


def test_poll_changes_dispatches_and_advances_cursor(client):
    remote = HttpEntityStore("/api", headers=_headers(), client=client)
    seen = []
    remote.subscribe("properties", seen.append)

    remote.insert("properties", {"name": "A"})
    remote.insert("inventory_items", {"name": "Soap"})

    changes = remote.poll_changes()
    assert [c.table for c in changes] == ["properties", "inventory_items"]
    assert [c.row["name"] for c in seen] == ["A"]
    assert remote.cursor == changes[-1].id

    assert remote.poll_changes() == []


def test_transport_errors_become_store_errors():
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    http = httpx.Client(transport=httpx.MockTransport(_handler), base_url="http://backend")
    remote = HttpEntityStore("", client=http, timeout=0.5)
    with pytest.raises(EntityStoreError):
        remote.list("properties")


def test_server_errors_become_store_errors():
    http = httpx.Client(
        transport=httpx.MockTransport(lambda r: httpx.Response(500, json={"detail": "db down"})),
        base_url="http://backend",
    )
    remote = HttpEntityStore("", client=http)
    with pytest.raises(EntityStoreError) as ei:
        remote.insert("properties", {"name": "x"})
    assert ei.value.message == "db down"
    assert not isinstance(ei.value, NotFoundError)


def _user_with_properties(client, email: str, role: str, *property_ids: str) -> str:
    uid = client.get("/api/users/me", headers=_headers(email, role)).json()["user_id"]
    for pid in property_ids:
        r = client.post(f"/api/users/{uid}/properties", json={"property_id": pid}, headers=_headers())
        assert r.status_code == 200, r.text
    return uid


def _selection(remote: HttpEntityStore) -> PropertySelectionStore:
    return PropertySelectionStore(remote, InMemoryKeyValueStore(), CollectingNotifier()).start()


def test_deleting_selected_property_clears_assignee_selection(client):
    owner = HttpEntityStore("/api", headers=_headers(), client=client)
    a, b, c = (owner.insert("properties", {"name": n}) for n in ("A", "B", "C"))
    _user_with_properties(client, "inspector@demo.local", "inspector", a["id"], b["id"], c["id"])

    remote = HttpEntityStore("/api", headers=_headers("inspector@demo.local", "inspector"), client=client)
    sel = _selection(remote)
    remote.poll_changes()
    sel.set_selected_property(a)

    owner.delete("properties", a["id"])
    changes = remote.poll_changes()

    gone = [ch for ch in changes if ch.table == "properties" and ch.row_id == a["id"]]
    assert [ch.action for ch in gone] == [DELETE]
    assert gone[0].row is None
    assert sel.selected_property is None
    assert [p["id"] for p in sel.user_properties] == [b["id"], c["id"]]


def test_unassigning_property_refreshes_assignee_selection(client):
    owner = HttpEntityStore("/api", headers=_headers(), client=client)
    a, b, c = (owner.insert("properties", {"name": n}) for n in ("A", "B", "C"))
    uid = _user_with_properties(client, "inspector@demo.local", "inspector", a["id"], b["id"], c["id"])

    remote = HttpEntityStore("/api", headers=_headers("inspector@demo.local", "inspector"), client=client)
    sel = _selection(remote)
    remote.poll_changes()
    assert len(sel.user_properties) == 3

    assert client.delete(f"/api/users/{uid}/properties/{b['id']}", headers=_headers()).status_code == 200
    changes = remote.poll_changes()

    props = [(ch.action, ch.row_id, ch.row) for ch in changes if ch.table == "properties"]
    assert props == [(UPDATE, b["id"], None)]
    assert [p["id"] for p in sel.user_properties] == [a["id"], c["id"]]


def test_row_moved_to_hidden_property_arrives_without_contents(client):
    owner = HttpEntityStore("/api", headers=_headers(), client=client)
    a = owner.insert("properties", {"name": "A"})
    b = owner.insert("properties", {"name": "B"})
    _user_with_properties(client, "cleaner@demo.local", "cleaner", a["id"])

    remote = HttpEntityStore("/api", headers=_headers("cleaner@demo.local", "cleaner"), client=client)
    remote.poll_changes()

    item = owner.insert("inventory_items", {"name": "Soap", "property_id": a["id"]})
    owner.update("inventory_items", item["id"], {"property_id": b["id"]})
    owner.update("inventory_items", item["id"], {"name": "Hidden soap"})

    items = [ch for ch in remote.poll_changes() if ch.table == "inventory_items"]
    assert [(ch.action, ch.row is None) for ch in items] == [(INSERT, False), (UPDATE, True)]


def test_feed_hides_other_users_roles_and_assignments(client):
    cleaner_id = _user_with_properties(client, "cleaner@demo.local", "cleaner")
    other_id = _user_with_properties(client, "other@demo.local", "cleaner")
    owner = HttpEntityStore("/api", headers=_headers(), client=client)
    p = owner.insert("properties", {"name": "A"})
    for uid in (other_id, cleaner_id):
        r = client.post(f"/api/users/{uid}/roles", json={"role": "inspector"}, headers=_headers())
        assert r.status_code == 200, r.text
    _user_with_properties(client, "other@demo.local", "cleaner", p["id"])

    remote = HttpEntityStore("/api", headers=_headers("cleaner@demo.local", "cleaner"), client=client)
    changes = remote.poll_changes()

    assert [ch.row["user_id"] for ch in changes if ch.table == "user_roles"] == [cleaner_id]
    assert [ch for ch in changes if ch.table in ("property_assignments", "properties")] == []
    assert [r["id"] for r in remote.list("app_users")] == [cleaner_id]
