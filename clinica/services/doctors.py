"""Doctor persistence: availability upsert, deletion and listing."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from prometheus_client import Counter
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinica.logging_utils import set_clinic_context
from clinica.models import Clinic, Doctor
from clinica.services.authorization import (
    DoctorOperation,
    authorize_doctor_operation,
)
from clinica.services.availability import (
    DoctorCandidate,
    classify_weekday_range,
    validate_doctor,
)
from clinica.services.errors import NotFound, PersistenceError
from clinica.services.sessions import CallerSession
from clinica.services.specialties import specialty_label
from clinica.services.timezones import (
    clinic_timezone,
    format_time_of_day,
    local_time_to_utc,
    parse_time_of_day,
    utc_time_to_local,
)
from clinica.services.view_cache import (
    DOCTORS_VIEW,
    get_cached_view,
    invalidate_view,
    store_view,
    view_generation,
)

logger = logging.getLogger(__name__)

DOCTOR_MUTATIONS = Counter(
    "clinica_doctor_mutations_total",
    "Doctor upserts and deletions by outcome.",
    ["operation", "outcome"],
)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_insert(db: Session):
    dialect_name = db.get_bind().dialect.name
    try:
        return _UPSERT_DIALECTS[dialect_name]
    except KeyError:
        raise RuntimeError(f"Upsert is not supported on {dialect_name}") from None


def _reload_doctor(db: Session, doctor_id: UUID, clinic_id: UUID) -> Doctor | None:
    stmt = (
        select(Doctor)
        .where(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalars().first()


def upsert_doctor(
    db: Session,
    candidate: DoctorCandidate,
    session: CallerSession | None,
    *,
    reference_date: date | None = None,
) -> Doctor:
    """Create or update a doctor of the caller's clinic.

    Validation runs first, then the authorization gate; the clinic-local
    availability times are converted to UTC in the clinic timezone and
    written with a single ``INSERT ... ON CONFLICT (id) DO UPDATE``. The
    ``/doctors`` view is invalidated only once the write is committed.
    """

    draft = validate_doctor(candidate)
    operation = DoctorOperation.UPDATE if draft.id else DoctorOperation.CREATE
    clinic_id = authorize_doctor_operation(db, session, operation, draft.id)
    set_clinic_context(clinic_id)

    tz = clinic_timezone(db.get(Clinic, clinic_id))
    from_utc = local_time_to_utc(draft.available_from_time, tz, reference_date)
    to_utc = local_time_to_utc(draft.available_to_time, tz, reference_date)

    doctor_id = draft.id or uuid.uuid4()
    now = datetime.utcnow()
    mutable_values: dict[str, Any] = {
        "name": draft.name,
        "specialty": draft.specialty,
        "appointment_price_in_cents": draft.appointment_price_in_cents,
        "available_from_weekday": draft.available_from_weekday,
        "available_to_weekday": draft.available_to_weekday,
        "available_from_time": parse_time_of_day(from_utc),
        "available_to_time": parse_time_of_day(to_utc),
        "updated_at": now,
    }

    insert = _upsert_insert(db)
    stmt = insert(Doctor).values(
        id=doctor_id, clinic_id=clinic_id, created_at=now, **mutable_values
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_=mutable_values,
        where=Doctor.clinic_id == clinic_id,
    )

    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        DOCTOR_MUTATIONS.labels(operation=operation.value, outcome="error").inc()
        logger.exception(
            "doctor upsert failed",
            extra={"doctor_id": str(doctor_id), "operation": operation.value},
        )
        raise PersistenceError() from exc

    DOCTOR_MUTATIONS.labels(operation=operation.value, outcome="success").inc()
    logger.info(
        "doctor upserted",
        extra={
            "doctor_id": str(doctor_id),
            "operation": operation.value,
            "available_from_time_utc": from_utc,
            "available_to_time_utc": to_utc,
        },
    )
    invalidate_view(clinic_id, DOCTORS_VIEW)

    doctor = _reload_doctor(db, doctor_id, clinic_id)
    if doctor is None:  # pragma: no cover - removed concurrently
        raise NotFound()
    return doctor


def delete_doctor(db: Session, doctor_id: UUID, session: CallerSession | None) -> None:
    """Delete a doctor of the caller's clinic; appointments cascade in the database."""

    clinic_id = authorize_doctor_operation(
        db, session, DoctorOperation.DELETE, doctor_id
    )
    set_clinic_context(clinic_id)

    stmt = delete(Doctor).where(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id)
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        DOCTOR_MUTATIONS.labels(operation="delete", outcome="error").inc()
        logger.exception("doctor delete failed", extra={"doctor_id": str(doctor_id)})
        raise PersistenceError() from exc

    DOCTOR_MUTATIONS.labels(operation="delete", outcome="success").inc()
    logger.info("doctor deleted", extra={"doctor_id": str(doctor_id)})
    invalidate_view(clinic_id, DOCTORS_VIEW)


def list_doctors(db: Session, clinic_id: UUID) -> list[Doctor]:
    stmt = select(Doctor).where(Doctor.clinic_id == clinic_id).order_by(Doctor.name)
    return list(db.execute(stmt).scalars().all())


def serialize_doctor(
    doctor: Doctor, *, tz: ZoneInfo, reference_date: date | None = None
) -> dict[str, Any]:
    """Return a JSON-friendly representation of a doctor.

    The ``*_local`` times are rendered for the same clinic-local day the write
    path anchors on, so they echo what staff submitted.
    """

    weekday_range = classify_weekday_range(
        doctor.available_from_weekday, doctor.available_to_weekday
    )
    return {
        "id": str(doctor.id),
        "clinic_id": str(doctor.clinic_id),
        "name": doctor.name,
        "avatar_image_url": doctor.avatar_image_url,
        "specialty": doctor.specialty,
        "specialty_label": specialty_label(doctor.specialty),
        "appointment_price_in_cents": doctor.appointment_price_in_cents,
        "available_from_weekday": doctor.available_from_weekday,
        "available_to_weekday": doctor.available_to_weekday,
        "weekday_range": weekday_range.kind.value,
        "available_from_time": format_time_of_day(doctor.available_from_time),
        "available_to_time": format_time_of_day(doctor.available_to_time),
        "available_from_time_local": utc_time_to_local(
            doctor.available_from_time, tz, reference_date
        ),
        "available_to_time_local": utc_time_to_local(
            doctor.available_to_time, tz, reference_date
        ),
        "timezone": getattr(tz, "key", str(tz)),
    }


def doctors_view(db: Session, clinic_id: UUID) -> dict[str, Any]:
    """Return the clinic's doctors listing, recomputing it after invalidation."""

    generation = view_generation(clinic_id, DOCTORS_VIEW)
    cached = get_cached_view(clinic_id, DOCTORS_VIEW, generation)
    if cached is not None:
        return cached

    tz = clinic_timezone(db.get(Clinic, clinic_id))
    payload = {
        "clinic_id": str(clinic_id),
        "doctors": [serialize_doctor(doctor, tz=tz) for doctor in list_doctors(db, clinic_id)],
    }
    store_view(clinic_id, DOCTORS_VIEW, generation, payload)
    return payload
