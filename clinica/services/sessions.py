"""Resolve bearer tokens into the caller's session."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica.core.config import settings
from clinica.models import User, UserClinic, UserSession

DEFAULT_SESSION_LIFETIME = timedelta(days=7)


@dataclass(frozen=True)
class CallerSession:
    """Authenticated user and, when present, the clinic they belong to."""

    user_id: UUID
    user_name: str
    user_email: str
    clinic_id: UUID | None = None


def user_clinic_id(db: Session, user_id: UUID) -> UUID | None:
    """Return the clinic of a user (oldest membership first)."""

    stmt = (
        select(UserClinic.clinic_id)
        .where(UserClinic.user_id == user_id)
        .order_by(UserClinic.created_at)
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def load_caller_session(db: Session, token: str | None) -> CallerSession | None:
    """Return the session bound to ``token`` or ``None`` when absent or expired."""

    if not token:
        return None

    stmt = (
        select(UserSession, User)
        .join(User, User.id == UserSession.user_id)
        .where(UserSession.token == token, UserSession.expires_at > datetime.utcnow())
    )
    row = db.execute(stmt).first()
    if row is None:
        return None

    _, user = row
    return CallerSession(
        user_id=user.id,
        user_name=user.name,
        user_email=user.email,
        clinic_id=user_clinic_id(db, user.id),
    )


def issue_session(
    db: Session,
    user: User,
    *,
    lifetime: timedelta = DEFAULT_SESSION_LIFETIME,
) -> UserSession:
    """Create a session row with a random bearer token for ``user``."""

    session_row = UserSession(
        token=secrets.token_urlsafe(settings.session_token_bytes),
        user_id=user.id,
        expires_at=datetime.utcnow() + lifetime,
    )
    db.add(session_row)
    db.flush()
    return session_row
