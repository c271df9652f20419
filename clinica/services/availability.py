"""Validation of the doctor availability form."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from clinica.services.errors import ValidationFailed
from clinica.services.specialties import is_known_specialty
from clinica.services.timezones import is_time_of_day

logger = logging.getLogger(__name__)

MIN_APPOINTMENT_PRICE = Decimal("1")
FIRST_WEEKDAY = 0  # Sunday
LAST_WEEKDAY = 6  # Saturday
WEEKDAY_NAMES = ["Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado"]


class WeekdayRangeKind(str, enum.Enum):
    """Shape of the weekday interval a doctor is available in."""

    LINEAR = "linear"
    INVERTED = "inverted"


@dataclass(frozen=True)
class WeekdayRange:
    """Weekday interval tagged as linear or inverted.

    Inverted ranges (``start > end``) are kept as submitted; no wraparound
    meaning is assigned to them.
    """

    start: int
    end: int
    kind: WeekdayRangeKind

    @property
    def days(self) -> list[int] | None:
        if self.kind is WeekdayRangeKind.INVERTED:
            return None
        return list(range(self.start, self.end + 1))


def classify_weekday_range(start: int, end: int) -> WeekdayRange:
    kind = WeekdayRangeKind.LINEAR if start <= end else WeekdayRangeKind.INVERTED
    return WeekdayRange(start=start, end=end, kind=kind)


@dataclass
class DoctorCandidate:
    """Doctor fields as submitted by the form, before validation.

    Values are taken as sent; ``validate_doctor`` checks and coerces them.
    """

    name: Any
    specialty: Any
    appointment_price: Any
    available_from_weekday: Any
    available_to_weekday: Any
    available_from_time: Any
    available_to_time: Any
    id: Any = None


@dataclass(frozen=True)
class DoctorDraft:
    """Validated doctor fields; times are still clinic-local."""

    id: UUID | None
    name: str
    specialty: str
    appointment_price_in_cents: int
    available_from_weekday: int
    available_to_weekday: int
    available_from_time: str
    available_to_time: str

    @property
    def weekday_range(self) -> WeekdayRange:
        return classify_weekday_range(
            self.available_from_weekday, self.available_to_weekday
        )


def price_to_cents(price: Decimal) -> int:
    """Convert a major-unit price into integer cents."""

    return int((price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _coerce_price(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (Decimal, int, float, str)):
        return None
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return price if price.is_finite() else None


def _coerce_weekday(value: Any) -> int | None:
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        value = int(value)
    if (
        isinstance(value, int)
        and not isinstance(value, bool)
        and FIRST_WEEKDAY <= value <= LAST_WEEKDAY
    ):
        return value
    return None


def _coerce_id(value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    if isinstance(value, str):
        return UUID(value.strip()) if value.strip() else None
    raise ValueError(f"Invalid doctor id: {value!r}")


def _text(value: Any) -> str | None:
    """Strip a submitted text field; ``None`` when it is not text at all."""

    if value is None:
        return ""
    if not isinstance(value, str):
        return None
    return value.strip()


def validate_doctor(candidate: DoctorCandidate) -> DoctorDraft:
    """Validate a submitted doctor, reporting every failing field at once.

    Raises ``ValidationFailed`` whose ``errors`` maps field names to messages.
    """

    errors: dict[str, list[str]] = {}

    def reject(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    doctor_id: UUID | None = None
    try:
        doctor_id = _coerce_id(candidate.id)
    except ValueError:
        reject("id", "Identificador do médico inválido")

    name = _text(candidate.name)
    if name is None:
        reject("name", "Nome inválido")
    elif not name:
        reject("name", "Nome é obrigatório")

    specialty = _text(candidate.specialty)
    if specialty is None:
        reject("specialty", "Especialidade inválida")
    elif not specialty:
        reject("specialty", "Especialidade é obrigatória")
    elif not is_known_specialty(specialty):
        reject("specialty", "Especialidade inválida")

    price = _coerce_price(candidate.appointment_price)
    if price is None or price < MIN_APPOINTMENT_PRICE:
        reject("appointment_price", "Preço da consulta é obrigatório")

    from_weekday = _coerce_weekday(candidate.available_from_weekday)
    to_weekday = _coerce_weekday(candidate.available_to_weekday)
    if from_weekday is None:
        reject("available_from_weekday", "Dia da semana inválido")
    if to_weekday is None:
        reject("available_to_weekday", "Dia da semana inválido")

    from_time = _text(candidate.available_from_time)
    to_time = _text(candidate.available_to_time)
    if from_time == "":
        reject("available_from_time", "Hora de início é obrigatória")
    elif from_time is None or not is_time_of_day(from_time):
        reject("available_from_time", "Hora de início deve estar no formato HH:MM:SS")
    if to_time == "":
        reject("available_to_time", "Hora de término é obrigatória")
    elif to_time is None or not is_time_of_day(to_time):
        reject("available_to_time", "Hora de término deve estar no formato HH:MM:SS")

    # Zero-padded HH:MM:SS strings sort chronologically.
    if (
        from_time
        and to_time
        and is_time_of_day(from_time)
        and is_time_of_day(to_time)
        and not from_time < to_time
    ):
        reject(
            "available_to_time",
            "O horário de término deve ser posterior ao horário de início.",
        )

    if errors:
        logger.debug("doctor form rejected", extra={"fields": sorted(errors)})
        raise ValidationFailed(errors)

    return DoctorDraft(
        id=doctor_id,
        name=name,
        specialty=specialty,
        appointment_price_in_cents=price_to_cents(price),
        available_from_weekday=from_weekday,
        available_to_weekday=to_weekday,
        available_from_time=from_time,
        available_to_time=to_time,
    )
