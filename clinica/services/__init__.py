"""Service layer utilities for the Clinica API."""

from clinica.services.availability import (
    DoctorCandidate,
    DoctorDraft,
    WeekdayRange,
    WeekdayRangeKind,
    classify_weekday_range,
    validate_doctor,
)
from clinica.services.clinics import create_clinic
from clinica.services.doctors import (
    delete_doctor,
    doctors_view,
    list_doctors,
    serialize_doctor,
    upsert_doctor,
)
from clinica.services.sessions import CallerSession, load_caller_session

__all__ = [
    "CallerSession",
    "DoctorCandidate",
    "DoctorDraft",
    "WeekdayRange",
    "WeekdayRangeKind",
    "classify_weekday_range",
    "create_clinic",
    "delete_doctor",
    "doctors_view",
    "list_doctors",
    "load_caller_session",
    "serialize_doctor",
    "upsert_doctor",
    "validate_doctor",
]
