"""Import SQLAlchemy models for Alembic's autogenerate feature."""

from clinica.models.base import Base
from clinica.models import (  # noqa: F401
    Appointment,
    Clinic,
    Doctor,
    Patient,
    User,
    UserClinic,
    UserSession,
)

__all__ = [
    "Base",
    "Appointment",
    "Clinic",
    "Doctor",
    "Patient",
    "User",
    "UserClinic",
    "UserSession",
]
