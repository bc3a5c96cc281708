"""Staff account administration."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth import get_password_hash
from ..domain_errors import DomainError, not_found
from ..models import User
from ..schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


def get_user_or_404(*, db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise not_found("USER_NOT_FOUND", "Пользователь не найден")
    return user


def _ensure_email_free(db: Session, email: str, *, exclude_id: UUID | None = None) -> None:
    query = db.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise DomainError(
            code="USER_EMAIL_TAKEN",
            http_status=409,
            message="Пользователь с таким email уже существует",
        )


def create_user_use_case(*, db: Session, data: UserCreate) -> User:
    email = data.email.strip().lower()
    _ensure_email_free(db, email)

    user = User(
        email=email,
        name=data.name.strip(),
        role=data.role,
        password_hash=get_password_hash(data.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s created with role %s", user.email, user.role)
    return user


def update_user_use_case(*, db: Session, user_id: UUID, data: UserUpdate) -> User:
    user = get_user_or_404(db=db, user_id=user_id)
    if data.email is not None:
        email = data.email.strip().lower()
        _ensure_email_free(db, email, exclude_id=user.id)
        user.email = email
    if data.name is not None:
        user.name = data.name.strip()
    if data.role is not None:
        user.role = data.role
    db.commit()
    db.refresh(user)
    return user


def toggle_user_active_use_case(*, db: Session, user_id: UUID) -> User:
    """Flip ``is_active``. Inactive users cannot log in and cannot be assigned work."""
    user = get_user_or_404(db=db, user_id=user_id)
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)
    logger.info("User %s is now %s", user.email, "active" if user.is_active else "inactive")
    return user


def reset_user_password_use_case(*, db: Session, user_id: UUID, password: str) -> None:
    user = get_user_or_404(db=db, user_id=user_id)
    user.password_hash = get_password_hash(password)
    db.commit()
    logger.info("Password reset for %s", user.email)
