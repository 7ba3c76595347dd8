# staykeeper/domain/claims.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

PLATFORM_WINDOWS: dict[str, int] = {
    "airbnb": 14,
    "vrbo": 60,
    "direct": 30,
    "direct_booking": 30,
    "other": 30,
}
DEFAULT_WINDOW_DAYS = 30

PLATFORM_LABELS: dict[str, str] = {
    "airbnb": "Airbnb AirCover",
    "vrbo": "VRBO",
    "direct": "Direct Booking",
    "direct_booking": "Direct Booking",
}

CLAIM_STATUSES = ("not_filed", "filed_with_platform", "under_review", "approved", "denied", "paid")
URGENT_DAYS = 3


def platform_window_days(platform: Optional[str]) -> int:
    return PLATFORM_WINDOWS.get((platform or "other").strip().lower(), DEFAULT_WINDOW_DAYS)


def compute_claim_deadline(
    check_out_date: date,
    platform: Optional[str],
    stored_deadline: Optional[date] = None,
) -> date:
    if stored_deadline is not None:
        return stored_deadline
    return check_out_date + timedelta(days=platform_window_days(platform))


def claim_band(days_remaining: int) -> str:
    if days_remaining < 0:
        return "overdue"
    if days_remaining <= URGENT_DAYS:
        return "urgent"
    return "normal"


def is_filed(claim_status: Optional[str]) -> bool:
    return bool(claim_status) and claim_status != "not_filed"


def format_claim_status(claim_status: Optional[str]) -> str:
    return " ".join(w.capitalize() for w in (claim_status or "").split("_") if w)


@dataclass(frozen=True)
class ClaimTracking:
    filed: bool
    status_label: str
    platform_label: str
    window_days: int
    deadline: Optional[date] = None
    days_remaining: Optional[int] = None
    band: Optional[str] = None


def track_claim(
    *,
    check_out_date: Optional[date],
    platform: Optional[str],
    claim_status: Optional[str],
    claim_deadline: Optional[date],
    today: date,
) -> Optional[ClaimTracking]:
    """
    None without a checkout date. Once a claim is filed only the filed
    status is reported and no deadline is computed.
    """
    if check_out_date is None:
        return None

    window = platform_window_days(platform)
    label = PLATFORM_LABELS.get((platform or "").strip().lower(), "Platform")

    if is_filed(claim_status):
        return ClaimTracking(
            filed=True,
            status_label=format_claim_status(claim_status),
            platform_label=label,
            window_days=window,
        )

    deadline = compute_claim_deadline(check_out_date, platform, claim_deadline)
    days = (deadline - today).days
    return ClaimTracking(
        filed=False,
        status_label=format_claim_status(claim_status or "not_filed"),
        platform_label=label,
        window_days=window,
        deadline=deadline,
        days_remaining=days,
        band=claim_band(days),
    )
