# tests/test_view_state.py
from __future__ import annotations

import pytest

from staykeeper.domain.views import (
    AddView,
    DetailView,
    EditView,
    HistoryView,
    IllegalTransition,
    ListView,
    ViewEvent,
    transition,
)


def test_add_then_save_returns_to_list():
    v = transition(ListView(), ViewEvent("open_add"))
    assert v == AddView()
    assert transition(v, ViewEvent("saved")) == ListView()


def test_edit_flow():
    v = transition(ListView(), ViewEvent("open_detail", "r1"))
    assert v == DetailView("r1")
    v = transition(v, ViewEvent("open_edit", "r1"))
    assert v == EditView("r1")
    assert transition(v, ViewEvent("cancel")) == DetailView("r1")
    assert transition(v, ViewEvent("saved")) == DetailView("r1")
    assert transition(v, ViewEvent("deleted")) == ListView()


def test_history_and_cancel():
    v = transition(ListView(), ViewEvent("open_history"))
    assert v == HistoryView()
    assert transition(v, ViewEvent("cancel")) == ListView()


def test_adding_and_editing_cannot_overlap():
    with pytest.raises(IllegalTransition):
        transition(AddView(), ViewEvent("open_edit", "r1"))
    with pytest.raises(IllegalTransition):
        transition(EditView("r1"), ViewEvent("open_add"))


def test_bad_events():
    with pytest.raises(IllegalTransition):
        transition(ListView(), ViewEvent("open_edit"))
    with pytest.raises(IllegalTransition):
        transition(ListView(), ViewEvent("saved"))
    with pytest.raises(IllegalTransition):
        transition(ListView(), ViewEvent("explode"))
