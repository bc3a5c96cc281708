from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from orderflow.services.status_rules import (
    apply_milestone_status_timestamps,
    apply_task_status_timestamps,
    apply_ticket_status_timestamps,
    milestone_progress_percent,
    order_progress_percent,
    payment_outcome,
    progress_percent,
)

AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
EARLIER = datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc)


def test_completing_milestone_stamps_completed_at() -> None:
    stamps = apply_milestone_status_timestamps(
        current_status="PENDING",
        next_status="COMPLETED",
        completed_at=None,
        client_approved_at=None,
        at=AT,
    )
    assert stamps == {"completed_at": AT, "client_approved_at": None}


def test_reopening_completed_milestone_clears_both_timestamps() -> None:
    stamps = apply_milestone_status_timestamps(
        current_status="COMPLETED",
        next_status="IN_PROGRESS",
        completed_at=EARLIER,
        client_approved_at=EARLIER,
        at=AT,
    )
    assert stamps == {"completed_at": None, "client_approved_at": None}


def test_approval_keeps_completed_at() -> None:
    stamps = apply_milestone_status_timestamps(
        current_status="COMPLETED",
        next_status="APPROVED",
        completed_at=EARLIER,
        client_approved_at=None,
        at=AT,
    )
    assert stamps == {"completed_at": EARLIER, "client_approved_at": AT}


def test_pending_to_in_progress_leaves_timestamps_alone() -> None:
    stamps = apply_milestone_status_timestamps(
        current_status="PENDING",
        next_status="IN_PROGRESS",
        completed_at=None,
        client_approved_at=None,
        at=AT,
    )
    assert stamps == {"completed_at": None, "client_approved_at": None}


@pytest.mark.parametrize("current", ["COMPLETED", "APPROVED"])
@pytest.mark.parametrize("target", ["CANCELLED", "PENDING"])
def test_cancel_or_reset_clears_both_timestamps(current, target) -> None:
    stamps = apply_milestone_status_timestamps(
        current_status=current,
        next_status=target,
        completed_at=EARLIER,
        client_approved_at=EARLIER,
        at=AT,
    )
    assert stamps == {"completed_at": None, "client_approved_at": None}


def test_task_and_ticket_timestamps() -> None:
    assert apply_task_status_timestamps(next_status="DONE", at=AT) == {"completed_at": AT}
    assert apply_task_status_timestamps(next_status="REVIEW", at=AT) == {"completed_at": None}
    assert apply_ticket_status_timestamps(next_status="resolved", at=AT) == {"resolved_at": AT}
    assert apply_ticket_status_timestamps(next_status="OPEN", at=AT) == {"resolved_at": None, "closed_at": None}


def test_partial_then_full_payment() -> None:
    paid, status = payment_outcome(total=Decimal("1500"), paid_amount=Decimal("0"), amount=Decimal("600"))
    assert (paid, status) == (Decimal("600"), "PARTIALLY_PAID")

    paid, status = payment_outcome(total=Decimal("1500"), paid_amount=paid, amount=Decimal("900"))
    assert (paid, status) == (Decimal("1500"), "PAID")


def test_overpayment_stays_paid() -> None:
    paid, status = payment_outcome(total=Decimal("1000"), paid_amount=Decimal("800"), amount=Decimal("400"))
    assert (paid, status) == (Decimal("1200"), "PAID")


def test_progress_percent_rounds_half_up() -> None:
    assert progress_percent(0, 0) == 0
    assert progress_percent(1, 3) == 33
    assert progress_percent(2, 3) == 67
    assert progress_percent(1, 8) == 13
    assert progress_percent(4, 4) == 100


def test_progress_counts_done_work_only() -> None:
    assert milestone_progress_percent(["DONE", "TODO", "CANCELLED", "DONE"]) == 50
    assert order_progress_percent(["COMPLETED", "APPROVED", "PENDING", "IN_PROGRESS"]) == 50
    assert order_progress_percent([]) == 0
