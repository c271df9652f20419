from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinica.core.config import settings
from clinica.db.session import SessionLocal
from clinica.logging_utils import configure_logging, set_clinic_context
from clinica.models import Clinic, Doctor, User, UserClinic
from clinica.services.availability import DoctorCandidate
from clinica.services.doctors import upsert_doctor
from clinica.services.sessions import CallerSession, issue_session

logger = logging.getLogger(__name__)

DEMO_CLINIC_NAME = "Clínica Demo"
DEMO_USER: tuple[str, str] = ("Recepção Demo", "recepcao@example.com")

DOCTORS: list[tuple[str, str, Decimal, int, int, str, str]] = [
    ("Dra. Ana Costa", "cardiologia", Decimal("150.00"), 1, 5, "08:00:00", "18:00:00"),
    ("Dr. Bruno Lima", "pediatria", Decimal("120.00"), 1, 3, "09:00:00", "13:00:00"),
    ("Dra. Carla Souza", "dermatologia", Decimal("200.00"), 2, 6, "13:00:00", "19:30:00"),
]


def ensure_clinic(session: Session) -> Clinic:
    clinic = session.execute(
        select(Clinic).where(Clinic.name == DEMO_CLINIC_NAME)
    ).scalar_one_or_none()
    if clinic:
        set_clinic_context(clinic.id)
        logger.info("clinic already present")
        return clinic

    clinic = Clinic(name=DEMO_CLINIC_NAME, timezone=settings.timezone)
    session.add(clinic)
    session.flush()
    set_clinic_context(clinic.id)
    logger.info("created clinic")
    return clinic


def ensure_user(session: Session, clinic: Clinic) -> User:
    name, email = DEMO_USER
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user:
        user = User(name=name, email=email)
        session.add(user)
        session.flush()
        logger.info("created user", extra={"user_id": str(user.id)})

    membership = session.get(UserClinic, (user.id, clinic.id))
    if not membership:
        session.add(UserClinic(user_id=user.id, clinic_id=clinic.id))
        session.flush()
    return user


def ensure_doctors(session: Session, caller: CallerSession) -> int:
    created = 0
    for name, specialty, price, from_day, to_day, from_time, to_time in DOCTORS:
        existing = session.execute(
            select(Doctor).where(Doctor.clinic_id == caller.clinic_id, Doctor.name == name)
        ).scalar_one_or_none()
        if existing:
            continue
        upsert_doctor(
            session,
            DoctorCandidate(
                name=name,
                specialty=specialty,
                appointment_price=price,
                available_from_weekday=from_day,
                available_to_weekday=to_day,
                available_from_time=from_time,
                available_to_time=to_time,
            ),
            caller,
        )
        created += 1

    logger.info("ensured doctors", extra={"created": created, "total": len(DOCTORS)})
    return created


def seed() -> None:
    configure_logging()
    logger.info("starting seed process")

    session = SessionLocal()
    try:
        clinic = ensure_clinic(session)
        user = ensure_user(session, clinic)
        token = issue_session(session, user).token
        caller = CallerSession(
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            clinic_id=clinic.id,
        )
        session.commit()
        ensure_doctors(session, caller)
        logger.info("seed complete", extra={"session_token": token})
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    seed()
