from __future__ import annotations

import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from clinica.models.base import Base, TimestampMixin


class Clinic(Base, TimestampMixin):
    """Clinic tenant owning doctors, patients and appointments."""

    __tablename__ = "clinics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(
        String(64), default="America/Fortaleza", nullable=False
    )
