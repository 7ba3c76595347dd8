# staykeeper/domain/schedule.py
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional

from .scoping import PropertyScope

NON_RECURRING = ("none", "per_visit")
FREQUENCY_TYPES = ("none", "per_visit", "weekly", "monthly", "quarterly", "semi-annual", "annually", "yearly", "custom")

_MONTH_STEPS = {"monthly": 1, "quarterly": 3, "semi-annual": 6, "annually": 12, "yearly": 12}


def add_months(d: date, months: int) -> date:
    # Clamp to month end (Jan 31 + 1 month -> Feb 28/29).
    y, m0 = divmod(d.month - 1 + months, 12)
    year = d.year + y
    month = m0 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_occurrence(
    inspection_date: date,
    frequency_type: Optional[str],
    frequency_days: Optional[int] = None,
) -> Optional[date]:
    ft = (frequency_type or "").strip().lower()
    if not ft or ft in NON_RECURRING:
        return None
    if ft == "weekly":
        return inspection_date + timedelta(days=7)
    if ft in _MONTH_STEPS:
        return add_months(inspection_date, _MONTH_STEPS[ft])
    if ft == "custom":
        if frequency_days and int(frequency_days) > 0:
            return inspection_date + timedelta(days=int(frequency_days))
        return inspection_date
    return None


def due_band(days_until_due: int, due_soon_days: int = 7) -> str:
    if days_until_due < 0:
        return "overdue"
    if days_until_due <= due_soon_days:
        return "due_soon"
    return "scheduled"


@dataclass(frozen=True)
class UpcomingInspection:
    id: str
    source: str  # template|record
    property_id: str
    property_name: str
    template_id: Optional[str]
    template_name: str
    due_date: date
    days_until_due: int

    @property
    def band(self) -> str:
        return due_band(self.days_until_due)


def _as_date(v: Any) -> Optional[date]:
    if v is None or v == "":
        return None
    if isinstance(v, date):
        return v
    return date.fromisoformat(str(v)[:10])


def upcoming_inspections(
    templates: Iterable[Mapping[str, Any]],
    records: Iterable[Mapping[str, Any]],
    properties: Iterable[Mapping[str, Any]],
    *,
    scope: PropertyScope,
    today: date,
    assigned_template_ids: Optional[set[str]] = None,
) -> list[UpcomingInspection]:
    """
    Due dates come from two places: a template's next_occurrence and a saved
    record's next_due_date. Only rows tied to a known property are listed.

    When the caller has template assignments, only those templates (and
    records made from them) are kept; records without a template stay.
    """
    names = {str(p["id"]): str(p.get("name") or "") for p in properties}
    template_names = {}
    out: list[UpcomingInspection] = []

    for t in templates:
        template_names[str(t["id"])] = str(t.get("name") or "")
        pid = t.get("property_id")
        due = _as_date(t.get("next_occurrence"))
        if due is None or not pid or str(pid) not in names:
            continue
        out.append(
            UpcomingInspection(
                id=f"template-{t['id']}",
                source="template",
                property_id=str(pid),
                property_name=names[str(pid)],
                template_id=str(t["id"]),
                template_name=str(t.get("name") or ""),
                due_date=due,
                days_until_due=(due - today).days,
            )
        )

    for r in records:
        pid = r.get("property_id")
        due = _as_date(r.get("next_due_date"))
        if due is None or not pid or str(pid) not in names:
            continue
        tid = r.get("template_id")
        out.append(
            UpcomingInspection(
                id=f"record-{r['id']}",
                source="record",
                property_id=str(pid),
                property_name=names[str(pid)],
                template_id=str(tid) if tid else None,
                template_name=template_names.get(str(tid)) or str(r.get("template_name") or "") or "Inspection",
                due_date=due,
                days_until_due=(due - today).days,
            )
        )

    out = [u for u in out if scope.matches(u.property_id)]

    if assigned_template_ids:
        out = [u for u in out if u.template_id is None or u.template_id in assigned_template_ids]

    out.sort(key=lambda u: (u.days_until_due, u.property_name, u.template_name))
    return out
