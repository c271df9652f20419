from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from clinica.models.base import Base, TimestampMixin


class PatientSex(str, enum.Enum):
    """Sex recorded on the patient file."""

    MALE = "male"
    FEMALE = "female"


class Patient(Base, TimestampMixin):
    """Patient entity scoped by clinic."""

    __tablename__ = "patients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clinics.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    sex: Mapped[PatientSex] = mapped_column(
        Enum(PatientSex, name="patient_sex", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
