# staykeeper/domain/checklists.py
from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..errors import ValidationError


@dataclass(frozen=True)
class TemplateItem:
    """One line of a reusable checklist template. No completion state."""

    id: str
    description: str
    notes: str = ""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TemplateItem":
        return cls(
            id=str(d.get("id") or new_item_id()),
            description=str(d.get("description") or ""),
            notes=str(d.get("notes") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "description": self.description, "notes": self.notes}


@dataclass(frozen=True)
class ActiveItem:
    """One line of an in-progress checklist derived from a template."""

    id: str
    description: str
    completed: bool = False
    notes: str = ""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ActiveItem":
        return cls(
            id=str(d.get("id") or new_item_id()),
            description=str(d.get("description") or ""),
            completed=bool(d.get("completed", False)),
            notes=str(d.get("notes") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "description": self.description, "completed": self.completed, "notes": self.notes}


@dataclass(frozen=True)
class ChecklistProgress:
    total: int
    completed: int

    @property
    def pct(self) -> float:
        if self.total == 0:
            return 0.0
        return round(100.0 * self.completed / self.total, 1)


MatchKey = Callable[[str], str]


def new_item_id() -> str:
    return uuid.uuid4().hex


def match_key(description: str) -> str:
    """
    How an active item is recognised as "the same line" as a template item.

    Instance ids are local to the working copy and never shared with the
    template, so the description text is the key. Renaming a line therefore
    makes it a new line.
    """
    return description


TieBreak = Callable[[Sequence[ActiveItem], int], Optional[ActiveItem]]


def first_match_wins(candidates: Sequence[ActiveItem], occurrence: int) -> Optional[ActiveItem]:
    """
    Which active line a template line takes its state from when several
    share a key. `occurrence` counts template lines with that key (0-based).

    Every template line with the key takes the first active match. Known
    gap: two identical lines in one template cannot be ticked separately.
    """
    return candidates[0] if candidates else None


def pair_in_order(candidates: Sequence[ActiveItem], occurrence: int) -> Optional[ActiveItem]:
    """Alternative policy: the n-th template line with a key takes the n-th active line."""
    return candidates[occurrence] if occurrence < len(candidates) else None


def _index_by_key(items: Iterable[ActiveItem], key: MatchKey) -> dict[str, list[ActiveItem]]:
    idx: dict[str, list[ActiveItem]] = {}
    for it in items:
        idx.setdefault(key(it.description), []).append(it)
    return idx


def reconcile(
    active_items: Sequence[ActiveItem],
    template_items: Sequence[TemplateItem],
    *,
    key: MatchKey = match_key,
    tie_break: TieBreak = first_match_wins,
) -> list[ActiveItem]:
    """
    Rebuild an in-progress checklist so it has the template's current shape.

    - output order is template order
    - matched lines keep id, completed and notes; description is refreshed
    - unmatched template lines become fresh, unchecked lines
    - active lines with no template counterpart are dropped

    When one active line supplies state to several template lines, the first
    keeps its id and the others are copies with fresh ids.
    """
    candidates = _index_by_key(active_items, key)
    seen: Counter[str] = Counter()
    used_ids: set[str] = set()
    out: list[ActiveItem] = []
    for t in template_items:
        k = key(t.description)
        match = tie_break(candidates.get(k, []), seen[k])
        seen[k] += 1
        if match is None:
            out.append(ActiveItem(id=new_item_id(), description=t.description, completed=False, notes=""))
        elif match.id in used_ids:
            out.append(replace(match, id=new_item_id(), description=t.description))
        else:
            used_ids.add(match.id)
            out.append(replace(match, description=t.description))
    return out


def instantiate(template_items: Sequence[TemplateItem]) -> list[ActiveItem]:
    return [ActiveItem(id=new_item_id(), description=t.description) for t in template_items]


# -----------------------------
# Template editing
# -----------------------------
def _clean_description(text: str) -> str:
    t = " ".join((text or "").strip().split())
    if not t:
        raise ValidationError("Checklist item description is required")
    return t


def _position(items: Sequence[Any], item_id: str) -> int:
    for i, it in enumerate(items):
        if it.id == item_id:
            return i
    raise ValidationError(f"Unknown checklist item: {item_id}")


def add_item(items: Sequence[TemplateItem], description: str, notes: str = "") -> list[TemplateItem]:
    return [*items, TemplateItem(id=new_item_id(), description=_clean_description(description), notes=notes or "")]


def remove_item(items: Sequence[TemplateItem], item_id: str) -> list[TemplateItem]:
    _position(items, item_id)
    return [it for it in items if it.id != item_id]


def rename_item(items: Sequence[TemplateItem], item_id: str, description: str) -> list[TemplateItem]:
    pos = _position(items, item_id)
    out = list(items)
    out[pos] = replace(out[pos], description=_clean_description(description))
    return out


def move_item(items: Sequence[TemplateItem], item_id: str, new_index: int) -> list[TemplateItem]:
    pos = _position(items, item_id)
    out = list(items)
    moved = out.pop(pos)
    new_index = max(0, min(int(new_index), len(out)))
    out.insert(new_index, moved)
    return out


# -----------------------------
# Progress on a working copy
# -----------------------------
def toggle_item(items: Sequence[ActiveItem], item_id: str) -> list[ActiveItem]:
    pos = _position(items, item_id)
    out = list(items)
    out[pos] = replace(out[pos], completed=not out[pos].completed)
    return out


def set_item_notes(items: Sequence[ActiveItem], item_id: str, notes: str) -> list[ActiveItem]:
    pos = _position(items, item_id)
    out = list(items)
    out[pos] = replace(out[pos], notes=notes or "")
    return out


def completion_summary(items: Sequence[ActiveItem]) -> ChecklistProgress:
    return ChecklistProgress(total=len(items), completed=sum(1 for it in items if it.completed))


def items_from_json(raw: Iterable[Mapping[str, Any]] | None) -> list[TemplateItem]:
    return [TemplateItem.from_dict(d) for d in (raw or [])]


def active_from_json(raw: Iterable[Mapping[str, Any]] | None) -> list[ActiveItem]:
    return [ActiveItem.from_dict(d) for d in (raw or [])]


# -----------------------------
# Predefined templates
# -----------------------------
@dataclass(frozen=True)
class PredefinedTemplate:
    name: str
    frequency_type: str
    items: tuple[str, ...]


def predefined_templates() -> list[PredefinedTemplate]:
    return [
        PredefinedTemplate(
            "Per Visit",
            "per_visit",
            (
                "Check cleanliness of all rooms",
                "Verify all appliances working",
                "Check for any visible damage",
            ),
        ),
        PredefinedTemplate(
            "Monthly",
            "monthly",
            (
                "Deep clean all surfaces",
                "Check and replace air fresheners",
                "Inspect and clean appliances",
            ),
        ),
        PredefinedTemplate(
            "Quarterly",
            "quarterly",
            (
                "Deep clean carpets and upholstery",
                "Clean windows inside and out",
                "Check HVAC filters",
            ),
        ),
        PredefinedTemplate(
            "Yearly",
            "annually",
            (
                "Professional HVAC system cleaning",
                "Deep clean and organize storage areas",
                "Inspect roof and gutters",
            ),
        ),
    ]
