"""Status vocabularies and per-destination side-effect tables.

Order and invoice statuses form a free graph: any value may follow any other.
Only side effects (timestamps, derived status) are keyed by destination.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal


ROLES: tuple[str, ...] = ("ADMIN", "MANAGER", "DEVELOPER", "VIEWER")
STAFF_ROLES: tuple[str, ...] = ("ADMIN", "MANAGER")

PRIORITIES: tuple[str, ...] = ("LOW", "MEDIUM", "HIGH", "URGENT")

NOTIFICATION_TYPES: tuple[str, ...] = ("STATUS", "DEADLINE", "COMMENT", "TICKET", "ASSIGNMENT")

MILESTONE_STATUSES: tuple[str, ...] = ("PENDING", "IN_PROGRESS", "COMPLETED", "APPROVED", "CANCELLED")
MILESTONE_STATUS_LABELS: dict[str, str] = {
    "PENDING": "Ожидает",
    "IN_PROGRESS": "В работе",
    "COMPLETED": "Завершён",
    "APPROVED": "Согласован",
    "CANCELLED": "Отменён",
}
MILESTONE_TERMINAL_STATUSES: set[str] = {"COMPLETED", "APPROVED", "CANCELLED"}

TASK_STATUSES: tuple[str, ...] = ("TODO", "IN_PROGRESS", "REVIEW", "DONE", "CANCELLED")
TASK_TERMINAL_STATUSES: set[str] = {"DONE", "CANCELLED"}

INVOICE_STATUSES: tuple[str, ...] = (
    "DRAFT",
    "SENT",
    "VIEWED",
    "PAID",
    "PARTIALLY_PAID",
    "OVERDUE",
    "CANCELLED",
)
INVOICE_STATUS_LABELS: dict[str, str] = {
    "DRAFT": "Черновик",
    "SENT": "Отправлен",
    "VIEWED": "Просмотрен",
    "PAID": "Оплачен",
    "PARTIALLY_PAID": "Частично оплачен",
    "OVERDUE": "Просрочен",
    "CANCELLED": "Отменён",
}

PROPOSAL_STATUSES: tuple[str, ...] = ("DRAFT", "SENT", "VIEWED", "ACCEPTED", "REJECTED", "EXPIRED")
PROPOSAL_CLIENT_RESPONSES: set[str] = {"ACCEPTED", "REJECTED"}
PROPOSAL_RESPONDABLE_STATUSES: set[str] = {"SENT", "VIEWED"}

TICKET_STATUSES: tuple[str, ...] = ("OPEN", "IN_PROGRESS", "RESOLVED", "CLOSED")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_status(status: str | None) -> str:
    if not status:
        return ""
    return status.strip().upper()


def apply_milestone_status_timestamps(
    *,
    current_status: str | None,
    next_status: str,
    completed_at: datetime | None,
    client_approved_at: datetime | None,
    at: datetime | None = None,
) -> dict[str, datetime | None]:
    """Return the timestamp columns a milestone should carry after the move."""
    ts = at or now_utc()
    current = normalize_status(current_status)
    nxt = normalize_status(next_status)

    updated_completed_at = completed_at
    updated_approved_at = client_approved_at

    if nxt == "COMPLETED":
        updated_completed_at = ts
    elif nxt == "IN_PROGRESS" and current == "COMPLETED":
        # "Request changes" reopening.
        updated_completed_at = None
        updated_approved_at = None
    elif nxt == "APPROVED":
        updated_approved_at = ts
    elif nxt in {"CANCELLED", "PENDING"}:
        updated_completed_at = None
        updated_approved_at = None

    return {
        "completed_at": updated_completed_at,
        "client_approved_at": updated_approved_at,
    }


def apply_task_status_timestamps(*, next_status: str, at: datetime | None = None) -> dict[str, datetime | None]:
    if normalize_status(next_status) == "DONE":
        return {"completed_at": at or now_utc()}
    return {"completed_at": None}


def apply_proposal_status_timestamps(*, next_status: str, at: datetime | None = None) -> dict[str, datetime]:
    ts = at or now_utc()
    nxt = normalize_status(next_status)
    if nxt == "SENT":
        return {"sent_at": ts}
    if nxt == "VIEWED":
        return {"viewed_at": ts}
    if nxt in PROPOSAL_CLIENT_RESPONSES:
        return {"responded_at": ts}
    return {}


def apply_ticket_status_timestamps(*, next_status: str, at: datetime | None = None) -> dict[str, datetime | None]:
    ts = at or now_utc()
    nxt = normalize_status(next_status)
    if nxt == "RESOLVED":
        return {"resolved_at": ts}
    if nxt == "CLOSED":
        return {"closed_at": ts}
    return {"resolved_at": None, "closed_at": None}


def payment_outcome(*, total: Decimal, paid_amount: Decimal | None, amount: Decimal) -> tuple[Decimal, str]:
    """New paid amount and invoice status after a payment is applied.

    Overpayment is not capped; the invoice simply stays PAID.
    """
    new_paid = Decimal(paid_amount or 0) + Decimal(amount)
    status = "PAID" if new_paid >= Decimal(total) else "PARTIALLY_PAID"
    return new_paid, status


def progress_percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding in integers.
    return (done * 200 + total) // (2 * total)


def milestone_progress_percent(task_statuses: list[str]) -> int:
    done = sum(1 for status in task_statuses if normalize_status(status) == "DONE")
    return progress_percent(done, len(task_statuses))


def order_progress_percent(milestone_statuses: list[str]) -> int:
    done = sum(1 for status in milestone_statuses if normalize_status(status) in {"COMPLETED", "APPROVED"})
    return progress_percent(done, len(milestone_statuses))
