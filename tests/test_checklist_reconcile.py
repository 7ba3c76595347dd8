# tests/test_checklist_reconcile.py
from __future__ import annotations

import pytest

from staykeeper.domain.checklists import (
    ActiveItem,
    TemplateItem,
    add_item,
    completion_summary,
    instantiate,
    move_item,
    pair_in_order,
    reconcile,
    remove_item,
    rename_item,
    set_item_notes,
    toggle_item,
)
from staykeeper.errors import ValidationError


def _template(*descriptions: str) -> list[TemplateItem]:
    return [TemplateItem(id=f"t{i}", description=d) for i, d in enumerate(descriptions)]


def test_reorder_keeps_progress_at_new_position():
    active = [
        ActiveItem(id="a1", description="Clean fridge", completed=True, notes="done"),
        ActiveItem(id="a2", description="Check smoke alarm"),
        ActiveItem(id="a3", description="Restock coffee"),
    ]
    out = reconcile(active, _template("Restock coffee", "Check smoke alarm", "Clean fridge"))

    assert [i.description for i in out] == ["Restock coffee", "Check smoke alarm", "Clean fridge"]
    fridge = out[2]
    assert fridge.id == "a1"
    assert fridge.completed is True
    assert fridge.notes == "done"


def test_removed_item_drops_and_added_item_is_fresh():
    active = [
        ActiveItem(id="a1", description="X", completed=True, notes="n"),
        ActiveItem(id="a2", description="Keep", completed=True),
    ]
    out = reconcile(active, _template("Keep", "Y"))

    assert "X" not in [i.description for i in out]
    y = next(i for i in out if i.description == "Y")
    assert y.completed is False
    assert y.notes == ""
    assert y.id not in ("a1", "a2")
    assert out[0].completed is True


def test_renamed_item_loses_progress():
    active = [ActiveItem(id="a1", description="Wipe counters", completed=True, notes="ok")]
    out = reconcile(active, _template("Wipe all counters"))
    assert out[0].completed is False
    assert out[0].notes == ""


def test_duplicate_descriptions_take_first_match():
    active = [
        ActiveItem(id="a1", description="Check lock", completed=True, notes="front"),
        ActiveItem(id="a2", description="Check lock", completed=False, notes="back"),
    ]
    out = reconcile(active, _template("Check lock", "Check lock", "Check lock"))

    assert out[0].id == "a1"
    assert all(i.completed is True for i in out)
    assert [i.notes for i in out] == ["front", "front", "front"]
    assert out[1].id not in ("a1", "a2")
    assert out[2].id not in ("a1", "a2")
    assert len({i.id for i in out}) == 3


def test_single_completed_line_fills_every_duplicate():
    active = [ActiveItem(id="a1", description="A", completed=True, notes="ok")]
    out = reconcile(active, _template("A", "A"))

    assert out[1].completed is True
    assert out[1].notes == "ok"
    assert out[1].id != "a1"


def test_tie_break_can_be_swapped_for_in_order_pairing():
    active = [
        ActiveItem(id="a1", description="Check lock", completed=True, notes="front"),
        ActiveItem(id="a2", description="Check lock", completed=False, notes="back"),
    ]
    out = reconcile(active, _template("Check lock", "Check lock", "Check lock"), tie_break=pair_in_order)

    assert [i.id for i in out[:2]] == ["a1", "a2"]
    assert [i.notes for i in out[:2]] == ["front", "back"]
    assert out[2].id not in ("a1", "a2")
    assert out[2].completed is False


def test_custom_match_key_can_be_swapped():
    active = [ActiveItem(id="a1", description="clean FRIDGE", completed=True)]
    out = reconcile(active, _template("Clean fridge"), key=lambda d: d.lower())
    assert out[0].id == "a1"
    assert out[0].description == "Clean fridge"


def test_instantiate_starts_unchecked_with_new_ids():
    items = _template("A", "B")
    active = instantiate(items)
    assert [a.description for a in active] == ["A", "B"]
    assert all(not a.completed and a.notes == "" for a in active)
    assert {a.id for a in active}.isdisjoint({"t0", "t1"})


def test_template_editing_helpers():
    items = _template("A", "B")
    items = add_item(items, "  C   item ")
    assert items[-1].description == "C item"

    items = move_item(items, items[-1].id, 0)
    assert [i.description for i in items] == ["C item", "A", "B"]

    items = rename_item(items, "t0", "A2")
    items = remove_item(items, "t1")
    assert [i.description for i in items] == ["C item", "A2"]

    with pytest.raises(ValidationError):
        add_item(items, "   ")
    with pytest.raises(ValidationError):
        remove_item(items, "missing")


def test_progress_helpers():
    active = instantiate(_template("A", "B"))
    active = toggle_item(active, active[0].id)
    active = set_item_notes(active, active[1].id, "needs bulb")

    summary = completion_summary(active)
    assert (summary.total, summary.completed, summary.pct) == (2, 1, 50.0)
    assert active[1].notes == "needs bulb"
