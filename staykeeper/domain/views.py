# staykeeper/domain/views.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class ListView:
    kind: str = "list"


@dataclass(frozen=True)
class AddView:
    kind: str = "add"


@dataclass(frozen=True)
class EditView:
    entity_id: str
    kind: str = "edit"


@dataclass(frozen=True)
class HistoryView:
    kind: str = "history"


@dataclass(frozen=True)
class DetailView:
    entity_id: str
    kind: str = "detail"


CurrentView = Union[ListView, AddView, EditView, HistoryView, DetailView]


@dataclass(frozen=True)
class ViewEvent:
    """open_add | open_edit | open_detail | open_history | saved | cancel | deleted"""

    name: str
    entity_id: str | None = None


class IllegalTransition(ValueError):
    pass


def transition(view: CurrentView, event: ViewEvent) -> CurrentView:
    """
    Screen state for the CRUD screens. One value instead of a cluster of
    flags, so "adding" and "editing" can never both be true.
    """
    name = event.name

    if name == "open_add":
        if isinstance(view, (ListView, HistoryView)):
            return AddView()
        raise IllegalTransition(f"cannot add from {view.kind}")

    if name in ("open_edit", "open_detail"):
        if not event.entity_id:
            raise IllegalTransition(f"{name} needs an entity id")
        if isinstance(view, (ListView, HistoryView, DetailView)):
            return EditView(event.entity_id) if name == "open_edit" else DetailView(event.entity_id)
        raise IllegalTransition(f"cannot {name} from {view.kind}")

    if name == "open_history":
        if isinstance(view, (ListView, DetailView)):
            return HistoryView()
        raise IllegalTransition(f"cannot open history from {view.kind}")

    if name == "saved":
        if isinstance(view, AddView):
            return ListView()
        if isinstance(view, EditView):
            return DetailView(view.entity_id)
        raise IllegalTransition(f"nothing to save in {view.kind}")

    if name == "deleted":
        if isinstance(view, (EditView, DetailView)):
            return ListView()
        raise IllegalTransition(f"nothing to delete in {view.kind}")

    if name == "cancel":
        if isinstance(view, EditView):
            return DetailView(view.entity_id)
        return ListView()

    raise IllegalTransition(f"unknown event: {name}")
