from __future__ import annotations

import uuid
from datetime import time

from sqlalchemy import ForeignKey, Integer, String, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from clinica.models.base import Base, TimestampMixin


class Doctor(Base, TimestampMixin):
    """Practitioner scoped to one clinic, with weekly availability and pricing.

    Availability times are stored normalized to UTC.
    """

    __tablename__ = "doctors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    clinic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clinics.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    specialty: Mapped[str] = mapped_column(String(64), nullable=False)
    appointment_price_in_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    available_from_weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    available_to_weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    available_from_time: Mapped[time] = mapped_column(Time, nullable=False)
    available_to_time: Mapped[time] = mapped_column(Time, nullable=False)
