# tests/test_claim_deadline.py
from __future__ import annotations

from datetime import date

from staykeeper.domain import claims
from staykeeper.domain.claims import claim_band, compute_claim_deadline, format_claim_status, track_claim


def test_airbnb_deadline_and_urgent_band():
    t = track_claim(
        check_out_date=date(2024, 1, 1),
        platform="airbnb",
        claim_status="not_filed",
        claim_deadline=None,
        today=date(2024, 1, 14),
    )
    assert t is not None
    assert t.deadline == date(2024, 1, 15)
    assert t.days_remaining == 1
    assert t.band == "urgent"
    assert t.filed is False


def test_platform_windows():
    checkout = date(2024, 3, 1)
    assert compute_claim_deadline(checkout, "vrbo") == date(2024, 4, 30)
    assert compute_claim_deadline(checkout, "direct") == date(2024, 3, 31)
    assert compute_claim_deadline(checkout, "somewhere-else") == date(2024, 3, 31)
    assert compute_claim_deadline(checkout, None) == date(2024, 3, 31)


def test_stored_deadline_wins():
    stored = date(2024, 2, 1)
    assert compute_claim_deadline(date(2024, 1, 1), "airbnb", stored) == stored


def test_bands():
    assert claim_band(-1) == "overdue"
    assert claim_band(0) == "urgent"
    assert claim_band(3) == "urgent"
    assert claim_band(4) == "normal"


def test_filed_claim_never_computes_a_deadline(monkeypatch):
    def _boom(*_a, **_k):
        raise AssertionError("deadline computed for a filed claim")

    monkeypatch.setattr(claims, "compute_claim_deadline", _boom)

    t = track_claim(
        check_out_date=date(2024, 1, 1),
        platform="airbnb",
        claim_status="filed_with_platform",
        claim_deadline=None,
        today=date(2024, 1, 14),
    )
    assert t is not None
    assert t.filed is True
    assert t.status_label == "Filed With Platform"
    assert t.deadline is None
    assert t.days_remaining is None


def test_no_checkout_date_means_no_tracking():
    assert (
        track_claim(check_out_date=None, platform="airbnb", claim_status=None, claim_deadline=None, today=date.today())
        is None
    )


def test_format_claim_status():
    assert format_claim_status("under_review") == "Under Review"
    assert format_claim_status(None) == ""
