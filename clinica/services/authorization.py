"""Authorization gate for doctor mutations.

Access is resolved in a fixed order: an absent session is
``UNAUTHENTICATED``, a user without a clinic is ``NO_CLINIC`` and anything
else is ``AUTHORIZED`` for the session's clinic. Updates and deletes also
require the target doctor to belong to that clinic.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from clinica.models import Doctor
from clinica.services.errors import (
    Forbidden,
    NoClinicAssociation,
    NotFound,
    Unauthenticated,
)
from clinica.services.sessions import CallerSession

logger = logging.getLogger(__name__)


class AccessState(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    NO_CLINIC = "NO_CLINIC"
    AUTHORIZED = "AUTHORIZED"


class DoctorOperation(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ClinicAccess:
    state: AccessState
    clinic_id: UUID | None = None

    def require_clinic(self) -> UUID:
        """Return the authorized clinic id or raise the matching denial."""

        if self.state is AccessState.UNAUTHENTICATED:
            raise Unauthenticated()
        if self.state is AccessState.NO_CLINIC or self.clinic_id is None:
            raise NoClinicAssociation()
        return self.clinic_id


def resolve_clinic_access(session: CallerSession | None) -> ClinicAccess:
    if session is None:
        return ClinicAccess(AccessState.UNAUTHENTICATED)
    if session.clinic_id is None:
        return ClinicAccess(AccessState.NO_CLINIC)
    return ClinicAccess(AccessState.AUTHORIZED, session.clinic_id)


def authorize_doctor_operation(
    db: Session,
    session: CallerSession | None,
    operation: DoctorOperation,
    doctor_id: UUID | None = None,
) -> UUID:
    """Return the clinic id the caller may write ``operation`` into.

    The ownership lookup for updates and deletes completes before this
    returns, so no write can happen on a denied request.
    """

    clinic_id = resolve_clinic_access(session).require_clinic()

    if operation is DoctorOperation.CREATE:
        return clinic_id

    if doctor_id is None:
        raise NotFound()

    doctor = db.get(Doctor, doctor_id)
    if doctor is None:
        logger.warning(
            "doctor not found",
            extra={"doctor_id": str(doctor_id), "operation": operation.value},
        )
        raise NotFound()

    if doctor.clinic_id != clinic_id:
        logger.warning(
            "doctor belongs to another clinic",
            extra={"doctor_id": str(doctor_id), "operation": operation.value},
        )
        raise Forbidden()

    return clinic_id
