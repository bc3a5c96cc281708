"""Human-readable document numbers backed by counters on the settings row."""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, invalid
from ..models import SETTINGS_ROW_ID, Settings
from .status_rules import now_utc

logger = logging.getLogger(__name__)

# counter name -> (counter column, prefix column)
COUNTERS: dict[str, tuple[str, str]] = {
    "order": ("next_order_number", "order_prefix"),
    "invoice": ("next_invoice_number", "invoice_prefix"),
    "proposal": ("next_proposal_number", "proposal_prefix"),
    "ticket": ("next_ticket_number", "ticket_prefix"),
}

PREFIX_FIELDS: tuple[str, ...] = tuple(prefix for _, prefix in COUNTERS.values())


def format_document_number(prefix: str, year: int, value: int) -> str:
    """``ORD-2024-007``: prefix, year and the value zero-padded to 3 digits."""
    return f"{prefix}-{year}-{value:03d}"


def ensure_settings(db: Session) -> Settings:
    """Return the settings row, creating it with defaults when missing."""
    row = db.get(Settings, SETTINGS_ROW_ID)
    if row is None:
        row = Settings(id=SETTINGS_ROW_ID)
        db.add(row)
        db.flush()
        logger.info("Created default settings row")
    return row


def allocate_number(db: Session, counter: str, *, year: int | None = None) -> str:
    """Increment ``counter`` and return the formatted pre-increment value.

    The increment and the read happen in one ``UPDATE ... RETURNING``
    statement, so concurrent callers never observe the same value. The
    statement joins the caller's transaction: if the entity insert that
    follows fails and is rolled back, the counter is rolled back with it.
    """
    try:
        counter_field, prefix_field = COUNTERS[counter]
    except KeyError:
        raise ValueError(f"Unknown counter: {counter}") from None

    counter_column = getattr(Settings, counter_field)
    prefix_column = getattr(Settings, prefix_field)

    stmt = (
        update(Settings)
        .where(Settings.id == SETTINGS_ROW_ID)
        .values({counter_field: counter_column + 1})
        .returning(counter_column, prefix_column)
        .execution_options(synchronize_session=False)
    )
    row = db.execute(stmt).one_or_none()
    if row is None:
        raise DomainError(
            code="SETTINGS_NOT_INITIALIZED",
            http_status=500,
            message="Настройки нумерации не инициализированы",
        )

    next_value, prefix = row
    return format_document_number(prefix, year or now_utc().year, next_value - 1)


def get_numbering_settings(db: Session) -> Settings:
    row = db.get(Settings, SETTINGS_ROW_ID)
    if row is None:
        raise DomainError(
            code="SETTINGS_NOT_INITIALIZED",
            http_status=500,
            message="Настройки нумерации не инициализированы",
        )
    return row


def update_numbering_settings(db: Session, **prefixes: str | None) -> Settings:
    """Update document prefixes. Counters are never edited through this path."""
    row = get_numbering_settings(db)
    for field, value in prefixes.items():
        if field not in PREFIX_FIELDS:
            raise ValueError(f"Unknown prefix field: {field}")
        if value is None:
            continue
        value = value.strip()
        if not value:
            raise invalid("NUMBERING_PREFIX_EMPTY", "Префикс не может быть пустым")
        setattr(row, field, value)
    db.commit()
    db.refresh(row)
    return row
