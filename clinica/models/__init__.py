"""SQLAlchemy models for the Clinica API."""

from clinica.models.appointment import Appointment
from clinica.models.clinic import Clinic
from clinica.models.doctor import Doctor
from clinica.models.patient import Patient, PatientSex
from clinica.models.user import User, UserClinic, UserSession

__all__ = [
    "Appointment",
    "Clinic",
    "Doctor",
    "Patient",
    "PatientSex",
    "User",
    "UserClinic",
    "UserSession",
]
