"""Clinic onboarding for users that do not belong to a clinic yet."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinica.core.config import settings
from clinica.logging_utils import set_clinic_context
from clinica.models import Clinic, UserClinic
from clinica.services.errors import (
    ClinicAlreadyAssigned,
    PersistenceError,
    Unauthenticated,
    ValidationFailed,
)
from clinica.services.sessions import CallerSession
from clinica.services.timezones import is_valid_timezone

logger = logging.getLogger(__name__)


def create_clinic(
    db: Session,
    session: CallerSession | None,
    *,
    name: Any,
    timezone: Any = None,
) -> Clinic:
    """Create a clinic and make the caller its first member."""

    errors: dict[str, list[str]] = {}
    clinic_name = name.strip() if isinstance(name, str) else ""
    if not clinic_name:
        errors["name"] = ["Nome da clínica é obrigatório"]
    tz_name = (timezone.strip() if isinstance(timezone, str) else timezone) or settings.timezone
    if not isinstance(tz_name, str) or not is_valid_timezone(tz_name):
        errors["timezone"] = ["Fuso horário inválido"]
    if errors:
        raise ValidationFailed(errors, "Dados da clínica inválidos.")

    if session is None:
        raise Unauthenticated()
    if session.clinic_id is not None:
        raise ClinicAlreadyAssigned()

    clinic = Clinic(name=clinic_name, timezone=tz_name)
    try:
        db.add(clinic)
        db.flush()
        db.add(UserClinic(user_id=session.user_id, clinic_id=clinic.id))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("clinic creation failed")
        raise PersistenceError() from exc

    set_clinic_context(clinic.id)
    logger.info("clinic created", extra={"user_id": str(session.user_id)})
    return clinic
