# tests/test_api.py
from __future__ import annotations

from datetime import date, timedelta


OWNER = {"X-User-Email": "owner@demo.local", "X-User-Role": "owner"}
CLEANER = {"X-User-Email": "cleaner@demo.local", "X-User-Role": "cleaner"}
INSPECTOR = {"X-User-Email": "inspector@demo.local", "X-User-Role": "inspector"}


def _post(client, path, body, headers=OWNER):
    r = client.post(f"/api{path}", json=body, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_health_echoes_request_id(client):
    r = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers["X-Request-ID"] == "req-123"

    r2 = client.get("/api/health")
    assert r2.headers["X-Request-ID"]


def test_missing_identity_is_401(client):
    assert client.get("/api/properties").status_code == 401


def test_property_crud(client):
    p = _post(client, "/properties", {"name": "Lakeview", "city": "Traverse City"})
    assert p["name"] == "Lakeview"

    r = client.patch(f"/api/properties/{p['id']}", json={"state": "MI"}, headers=OWNER)
    assert r.status_code == 200
    assert r.json()["state"] == "MI"

    assert [x["name"] for x in client.get("/api/properties", headers=OWNER).json()] == ["Lakeview"]

    assert client.delete(f"/api/properties/{p['id']}", headers=OWNER).json()["ok"] is True
    assert client.get(f"/api/properties/{p['id']}", headers=OWNER).status_code == 404


def test_blank_property_name_is_rejected(client):
    assert client.post("/api/properties", json={"name": "  "}, headers=OWNER).status_code == 422


def test_cleaner_sees_only_assigned_properties(client):
    a = _post(client, "/properties", {"name": "A"})
    b = _post(client, "/properties", {"name": "B"})
    _post(client, "/inventory/items", {"name": "A soap", "property_id": a["id"]})
    _post(client, "/inventory/items", {"name": "B soap", "property_id": b["id"]})
    _post(client, "/inventory/items", {"name": "Shared soap"})

    cleaner_id = client.get("/api/users/me", headers=CLEANER).json()["user_id"]
    view = _post(client, f"/users/{cleaner_id}/properties", {"property_id": a["id"]})
    assert view["property_ids"] == [a["id"]]
    assert view["roles"] == ["cleaner"]

    props = client.get("/api/properties", headers=CLEANER).json()
    assert [x["name"] for x in props] == ["A"]

    items = client.get("/api/inventory/items", params={"mode": "all"}, headers=CLEANER).json()
    assert sorted(i["name"] for i in items) == ["A soap", "Shared soap"]

    assert client.get(f"/api/properties/{b['id']}", headers=CLEANER).status_code == 404
    assert client.post("/api/properties", json={"name": "C"}, headers=CLEANER).status_code == 403
    assert client.get("/api/users", headers=CLEANER).status_code == 403


def test_owner_manages_roles(client):
    cleaner_id = client.get("/api/users/me", headers=CLEANER).json()["user_id"]
    owner_id = client.get("/api/users/me", headers=OWNER).json()["user_id"]

    view = _post(client, f"/users/{cleaner_id}/roles", {"role": "manager"})
    assert view["roles"] == ["cleaner", "manager"]
    assert client.get("/api/users/me", headers=CLEANER).json()["role"] == "manager"

    r = client.delete(f"/api/users/{cleaner_id}/roles/manager", headers=OWNER)
    assert r.json()["roles"] == ["cleaner"]

    assert client.post(f"/api/users/{cleaner_id}/roles", json={"role": "admin"}, headers=OWNER).status_code == 400
    assert client.delete(f"/api/users/{owner_id}/roles/owner", headers=OWNER).status_code == 400


def test_scope_params_filter_items(client):
    a = _post(client, "/properties", {"name": "A"})
    _post(client, "/inventory/items", {"name": "In A", "property_id": a["id"]})
    _post(client, "/inventory/items", {"name": "Nowhere"})

    def names(params):
        return [i["name"] for i in client.get("/api/inventory/items", params=params, headers=OWNER).json()]

    assert names({"mode": "all"}) == ["In A", "Nowhere"]
    assert names({"mode": "unassigned"}) == ["Nowhere"]
    assert names({"property_id": a["id"]}) == ["In A"]
    assert names({"mode": "property"}) == []


def test_inventory_adjust_and_receive(client):
    item = _post(
        client,
        "/inventory/items",
        {"name": "Paper towels", "current_quantity": 6, "restock_threshold": 5, "reorder_quantity": 12},
    )
    assert item["status"] == "OK"

    low = _post(client, f"/inventory/items/{item['id']}/adjust", {"delta": -1})
    assert low["current_quantity"] == 5
    assert low["status"] == "Low"
    assert low["restock_requested"] is True

    out = _post(client, f"/inventory/items/{item['id']}/adjust", {"delta": -50})
    assert out["current_quantity"] == 0
    assert out["status"] == "Out"

    groups = client.get("/api/inventory/restock", headers=OWNER).json()
    assert groups[0]["property_name"] == "Unassigned"
    assert [i["name"] for i in groups[0]["items"]] == ["Paper towels"]

    back = _post(client, f"/inventory/items/{item['id']}/receive", {})
    assert back["current_quantity"] == 12
    assert back["restock_requested"] is False
    assert client.get("/api/inventory/restock", headers=OWNER).json() == []


def test_unit_price_derived_from_package(client):
    item = _post(client, "/inventory/items", {"name": "Pods", "cost_per_package": 12.0, "units_per_package": 24})
    assert item["unit_price"] == 0.5


def test_restock_csv_export(client):
    _post(
        client,
        "/inventory/items",
        {"name": "Filters", "current_quantity": 0, "asin": "B000TEST", "reorder_quantity": 3},
    )
    _post(client, "/inventory/items", {"name": "No asin", "current_quantity": 0})

    r = client.get("/api/inventory/restock/export.csv", headers=OWNER)
    assert r.status_code == 200
    lines = r.text.strip().splitlines()
    assert lines[0] == "ASIN,Merchant ID,Quantity,Unit Price,Product Name,Notes"
    assert lines[1].startswith("B000TEST,,3,")
    assert len(lines) == 2


def test_categories_are_unique_by_name(client):
    first = _post(client, "/inventory/categories", {"name": "Linens"})
    again = _post(client, "/inventory/categories", {"name": "linens"})
    assert again["id"] == first["id"]


def test_damage_report_claim_deadline(client):
    checkout = date.today() - timedelta(days=12)
    report = _post(
        client,
        "/damage-reports",
        {
            "description": "Wine on rug",
            "location": "Living room",
            "booking_platform": "airbnb",
            "check_out_date": checkout.isoformat(),
        },
    )
    assert report["claim_deadline"] == (checkout + timedelta(days=14)).isoformat()

    claim = client.get(f"/api/damage-reports/{report['id']}/claim", headers=OWNER).json()
    assert claim["filed"] is False
    assert claim["days_remaining"] == 2
    assert claim["band"] == "urgent"
    assert claim["platform_label"] == "Airbnb AirCover"

    r = client.patch(
        f"/api/damage-reports/{report['id']}", json={"claim_status": "under_review"}, headers=OWNER
    )
    assert r.status_code == 200
    filed = client.get(f"/api/damage-reports/{report['id']}/claim", headers=OWNER).json()
    assert filed["filed"] is True
    assert filed["status_label"] == "Under Review"
    assert filed["deadline"] is None


def test_damage_report_without_checkout_has_no_claim(client):
    report = _post(client, "/damage-reports", {"description": "Chip", "location": "Sink", "severity": "moderate"})
    r = client.get(f"/api/damage-reports/{report['id']}/claim", headers=OWNER)
    assert r.status_code == 200
    assert r.json() is None

    bad = client.post(
        "/api/damage-reports", json={"description": "x", "location": "y", "severity": "huge"}, headers=OWNER
    )
    assert bad.status_code == 400


def test_open_damage_filter(client):
    _post(client, "/damage-reports", {"description": "a", "location": "x"})
    _post(client, "/damage-reports", {"description": "b", "location": "x", "status": "resolved"})
    rows = client.get("/api/damage-reports", params={"open_only": "true"}, headers=OWNER).json()
    assert [r["description"] for r in rows] == ["a"]


def test_template_lifecycle_and_reconcile(client):
    t = _post(
        client,
        "/templates",
        {"name": "Turnover", "items": [{"description": "Beds"}, {"description": "Towels"}]},
    )
    beds_id = "active-1"
    active = [
        {"id": beds_id, "description": "Beds", "completed": True, "notes": "done"},
        {"id": "active-2", "description": "Old line", "completed": True, "notes": ""},
    ]

    r = client.patch(
        f"/api/templates/{t['id']}",
        json={"items": [{"description": "Towels"}, {"description": "Beds"}]},
        headers=OWNER,
    )
    assert r.status_code == 200

    merged = _post(client, f"/templates/{t['id']}/reconcile", {"items": active})
    assert [m["description"] for m in merged] == ["Towels", "Beds"]
    assert merged[0]["completed"] is False
    assert merged[1] == {"id": beds_id, "description": "Beds", "completed": True, "notes": "done"}


def test_predefined_templates_cannot_be_deleted(client):
    seeded = _post(client, "/templates/seed", {})
    assert len(seeded) == 4
    assert _post(client, "/templates/seed", {}) == []

    yearly = next(t for t in seeded if t["name"] == "Yearly")
    assert client.delete(f"/api/templates/{yearly['id']}", headers=OWNER).status_code == 400
    assert client.patch(f"/api/templates/{yearly['id']}", json={"name": "Annual"}, headers=OWNER).status_code == 400


def test_inspection_record_and_upcoming(client):
    cabin = _post(client, "/properties", {"name": "Cabin"})
    t = _post(
        client,
        "/templates",
        {
            "name": "Weekly walk",
            "items": [{"description": "Doors"}],
            "frequency_type": "weekly",
            "property_id": cabin["id"],
        },
    )
    done = date.today() - timedelta(days=3)
    rec = _post(
        client,
        "/inspections",
        {
            "template_id": t["id"],
            "inspection_date": done.isoformat(),
            "items": [{"id": "i1", "description": "Doors", "completed": True, "notes": ""}],
            "performed_by": "Sam",
        },
    )
    assert rec["next_due_date"] == (done + timedelta(days=7)).isoformat()

    history = client.get("/api/inspections", headers=OWNER).json()
    assert [h["id"] for h in history] == [rec["id"]]

    upcoming = client.get("/api/inspections/upcoming", headers=OWNER).json()
    assert [(u["source"], u["days_until_due"], u["property_name"]) for u in upcoming] == [("record", 4, "Cabin")]

    stats = client.get("/api/dashboard/stats", headers=OWNER).json()
    assert stats["upcoming_inspections"] >= 1

    bad = client.post(
        "/api/inspections",
        json={"template_id": t["id"], "inspection_date": done.isoformat(), "items": []},
        headers=OWNER,
    )
    assert bad.status_code == 400


def test_dashboard_stats(client):
    a = _post(client, "/properties", {"name": "A"})
    _post(client, "/inventory/items", {"name": "Low", "current_quantity": 1, "property_id": a["id"]})
    _post(client, "/inventory/items", {"name": "Plenty", "current_quantity": 50})
    _post(client, "/damage-reports", {"description": "Dent", "location": "Door", "property_id": a["id"]})

    stats = client.get("/api/dashboard/stats", headers=OWNER).json()
    assert stats == {"open_damage_reports": 1, "upcoming_inspections": 0, "low_stock_items": 1}

    unassigned = client.get("/api/dashboard/stats", params={"mode": "unassigned"}, headers=OWNER).json()
    assert unassigned["low_stock_items"] == 0
    assert unassigned["open_damage_reports"] == 0


def test_changes_hide_rows_from_unassigned_properties(client):
    a = _post(client, "/properties", {"name": "A"})
    b = _post(client, "/properties", {"name": "B"})
    cleaner_id = client.get("/api/users/me", headers=CLEANER).json()["user_id"]
    _post(client, f"/users/{cleaner_id}/properties", {"property_id": a["id"]})
    _post(client, "/inventory/items", {"name": "B only", "property_id": b["id"]})

    owner_page = client.get("/api/changes", headers=OWNER).json()
    cleaner_page = client.get("/api/changes", params={"table": "properties"}, headers=CLEANER).json()

    assert [(c["action"], c["row_id"]) for c in cleaner_page["changes"]] == [("INSERT", a["id"]), ("UPDATE", a["id"])]
    # the assignment notice names the property but carries no row
    assert cleaner_page["changes"][1]["row"] is None
    assert cleaner_page["cursor"] >= 2
    assert owner_page["cursor"] == owner_page["changes"][-1]["id"]

    later = client.get("/api/changes", params={"after": owner_page["cursor"]}, headers=OWNER).json()
    assert later == {"changes": [], "cursor": owner_page["cursor"]}


def test_generic_entities_endpoint(client):
    _post(client, "/entities/inventory_items", {"name": "Loose", "property_id": None})
    rows = client.get("/api/entities/inventory_items", params={"property_id": "null"}, headers=OWNER).json()
    assert [r["name"] for r in rows] == ["Loose"]

    assert client.get("/api/entities/nope", headers=OWNER).status_code == 422


def test_template_assignments(client):
    t = _post(client, "/templates", {"name": "Turnover", "items": [{"description": "Beds"}]})
    inspector_id = client.get("/api/users/me", headers=INSPECTOR).json()["user_id"]
    owner_id = client.get("/api/users/me", headers=OWNER).json()["user_id"]
    path = f"/api/templates/{t['id']}/assignments"

    a = _post(client, f"/templates/{t['id']}/assignments", {"user_id": inspector_id})
    assert (a["template_id"], a["assigned_to"], a["assigned_by"]) == (t["id"], inspector_id, owner_id)

    assert client.post(path, json={"user_id": inspector_id}, headers=OWNER).status_code == 409
    assert client.post(path, json={"user_id": owner_id}, headers=INSPECTOR).status_code == 403
    assert client.post(path, json={"user_id": "nobody"}, headers=OWNER).status_code == 404
    assert client.post("/api/templates/missing/assignments", json={"user_id": inspector_id}, headers=OWNER).status_code == 404

    assert [x["assigned_to"] for x in client.get(path, headers=OWNER).json()] == [inspector_id]
    assert [x["assigned_to"] for x in client.get(path, headers=INSPECTOR).json()] == [inspector_id]

    r = client.delete(f"{path}/{inspector_id}", headers=OWNER)
    assert r.json() == {"ok": True, "removed": 1}
    assert client.get(path, headers=OWNER).json() == []


def test_upcoming_and_dashboard_follow_template_assignments(client):
    cabin = _post(client, "/properties", {"name": "Cabin"})
    soon = (date.today() + timedelta(days=2)).isoformat()
    mine = _post(
        client,
        "/templates",
        {"name": "Mine", "items": [{"description": "A"}], "property_id": cabin["id"], "next_occurrence": soon},
    )
    _post(
        client,
        "/templates",
        {"name": "Other", "items": [{"description": "B"}], "property_id": cabin["id"], "next_occurrence": soon},
    )
    inspector_id = client.get("/api/users/me", headers=INSPECTOR).json()["user_id"]
    _post(client, f"/users/{inspector_id}/properties", {"property_id": cabin["id"]})

    before = client.get("/api/inspections/upcoming", headers=INSPECTOR).json()
    assert sorted(u["template_name"] for u in before) == ["Mine", "Other"]
    assert client.get("/api/dashboard/stats", headers=INSPECTOR).json()["upcoming_inspections"] == 2

    _post(client, f"/templates/{mine['id']}/assignments", {"user_id": inspector_id})

    after = client.get("/api/inspections/upcoming", headers=INSPECTOR).json()
    assert [u["template_name"] for u in after] == ["Mine"]
    assert client.get("/api/dashboard/stats", headers=INSPECTOR).json()["upcoming_inspections"] == 1

    owner_view = client.get("/api/inspections/upcoming", headers=OWNER).json()
    assert len(owner_view) == 2
