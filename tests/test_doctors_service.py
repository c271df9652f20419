from datetime import date, datetime, time
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from clinica.models import Appointment, Clinic, Doctor, Patient, PatientSex
from clinica.services.availability import DoctorCandidate
from clinica.services.doctors import (
    delete_doctor,
    doctors_view,
    serialize_doctor,
    upsert_doctor,
)
from clinica.services.errors import (
    Forbidden,
    NotFound,
    PersistenceError,
    Unauthenticated,
    ValidationFailed,
)
from clinica.services.timezones import clinic_timezone

DOCTORS_KEY = "clinica:view:{clinic_id}:/doctors:{generation}"


def make_candidate(**overrides) -> DoctorCandidate:
    fields = {
        "name": "Dr. Ana",
        "specialty": "cardiologia",
        "appointment_price": Decimal("150.00"),
        "available_from_weekday": 1,
        "available_to_weekday": 5,
        "available_from_time": "08:00:00",
        "available_to_time": "18:00:00",
    }
    fields.update(overrides)
    return DoctorCandidate(**fields)


def doctor_count(db_session) -> int:
    return db_session.execute(select(func.count()).select_from(Doctor)).scalar_one()


def test_create_then_delete_scenario(db_session, caller, clinic):
    doctor = upsert_doctor(db_session, make_candidate(), caller)

    assert doctor.clinic_id == clinic.id
    assert doctor.appointment_price_in_cents == 15000
    # America/Fortaleza is UTC-3 all year round.
    assert doctor.available_from_time == time(11, 0, 0)
    assert doctor.available_to_time == time(21, 0, 0)

    delete_doctor(db_session, doctor.id, caller)

    assert db_session.get(Doctor, doctor.id) is None
    assert doctor_count(db_session) == 0


def test_validation_runs_before_authorization(db_session):
    candidate = make_candidate(
        available_from_time="18:00:00", available_to_time="08:00:00"
    )

    with pytest.raises(ValidationFailed) as excinfo:
        upsert_doctor(db_session, candidate, None)

    assert list(excinfo.value.errors) == ["available_to_time"]
    assert doctor_count(db_session) == 0


def test_unauthenticated_caller_cannot_create(db_session):
    with pytest.raises(Unauthenticated):
        upsert_doctor(db_session, make_candidate(), None)

    assert doctor_count(db_session) == 0


def test_repeated_upsert_is_idempotent(db_session, caller):
    created = upsert_doctor(db_session, make_candidate(), caller)
    doctor_id = created.id

    first = serialize_doctor(
        upsert_doctor(db_session, make_candidate(id=doctor_id), caller),
        tz=clinic_timezone(None),
    )
    second = serialize_doctor(
        upsert_doctor(db_session, make_candidate(id=doctor_id), caller),
        tz=clinic_timezone(None),
    )

    assert first == second
    assert doctor_count(db_session) == 1


def test_update_overwrites_mutable_fields(db_session, caller, clinic):
    doctor = upsert_doctor(db_session, make_candidate(), caller)

    updated = upsert_doctor(
        db_session,
        make_candidate(
            id=doctor.id,
            name="Dra. Ana Paula",
            specialty="neurologia",
            appointment_price=Decimal("99.90"),
            available_from_weekday=6,
            available_to_weekday=0,
            available_from_time="13:30:00",
            available_to_time="17:00:00",
        ),
        caller,
    )

    assert updated.id == doctor.id
    assert updated.clinic_id == clinic.id
    assert updated.name == "Dra. Ana Paula"
    assert updated.specialty == "neurologia"
    assert updated.appointment_price_in_cents == 9990
    assert (updated.available_from_weekday, updated.available_to_weekday) == (6, 0)
    assert updated.available_from_time == time(16, 30)
    assert updated.available_to_time == time(20, 0)


def test_update_of_unknown_doctor_is_not_found(db_session, caller):
    with pytest.raises(NotFound):
        upsert_doctor(db_session, make_candidate(id=uuid4()), caller)

    assert doctor_count(db_session) == 0


def test_other_clinic_cannot_update_or_delete(db_session, caller, other_caller):
    doctor = upsert_doctor(db_session, make_candidate(), caller)

    with pytest.raises(Forbidden):
        upsert_doctor(db_session, make_candidate(id=doctor.id, name="Invasor"), other_caller)
    with pytest.raises(Forbidden):
        delete_doctor(db_session, doctor.id, other_caller)

    db_session.expire_all()
    stored = db_session.get(Doctor, doctor.id)
    assert stored.name == "Dr. Ana"
    assert stored.clinic_id == caller.clinic_id


def test_delete_of_missing_doctor_is_not_found(db_session, caller):
    with pytest.raises(NotFound):
        delete_doctor(db_session, uuid4(), caller)


def test_delete_cascades_to_appointments(db_session, caller, clinic):
    doctor = upsert_doctor(db_session, make_candidate(), caller)
    patient = Patient(
        clinic_id=clinic.id,
        name="Maria Silva",
        email="maria@example.com",
        phone_number="+5585987654321",
        sex=PatientSex.FEMALE,
    )
    db_session.add(patient)
    db_session.flush()
    db_session.add(
        Appointment(
            clinic_id=clinic.id,
            patient_id=patient.id,
            doctor_id=doctor.id,
            date=datetime(2025, 3, 10, 14, 0),
        )
    )
    db_session.commit()

    delete_doctor(db_session, doctor.id, caller)

    remaining = db_session.execute(select(func.count()).select_from(Appointment)).scalar_one()
    assert remaining == 0


def test_clinic_deletion_cascades_to_doctors(db_session, caller, clinic):
    upsert_doctor(db_session, make_candidate(), caller)

    db_session.delete(db_session.get(Clinic, clinic.id))
    db_session.commit()

    assert doctor_count(db_session) == 0


def test_successful_write_invalidates_listing(db_session, caller, clinic, fake_redis):
    assert doctors_view(db_session, clinic.id)["doctors"] == []
    assert DOCTORS_KEY.format(clinic_id=clinic.id, generation=0) in fake_redis.store

    upsert_doctor(db_session, make_candidate(), caller)

    assert DOCTORS_KEY.format(clinic_id=clinic.id, generation=1) not in fake_redis.store
    listing = doctors_view(db_session, clinic.id)
    assert [doctor["name"] for doctor in listing["doctors"]] == ["Dr. Ana"]
    assert listing["doctors"][0]["available_from_time_local"] == "08:00:00"
    assert listing["doctors"][0]["available_from_time"] == "11:00:00"


def test_failed_write_raises_and_keeps_cache(
    db_session, caller, clinic, fake_redis, monkeypatch
):
    doctors_view(db_session, clinic.id)
    key = DOCTORS_KEY.format(clinic_id=clinic.id, generation=0)

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database unavailable"))

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(PersistenceError):
        upsert_doctor(db_session, make_candidate(), caller)

    assert key in fake_redis.store
    assert f"clinica:view:{clinic.id}:/doctors:generation" not in fake_redis.store
    assert doctor_count(db_session) == 0


def test_inverted_weekday_range_is_stored_and_tagged(db_session, caller, clinic):
    doctor = upsert_doctor(
        db_session,
        make_candidate(available_from_weekday=5, available_to_weekday=1),
        caller,
    )

    serialized = serialize_doctor(doctor, tz=clinic_timezone(None))

    assert serialized["weekday_range"] == "inverted"
    assert serialized["available_from_weekday"] == 5
    assert serialized["specialty_label"] == "Cardiologia"


def test_local_times_echo_the_submission_in_a_daylight_saving_zone(
    db_session, caller, clinic
):
    clinic.timezone = "America/New_York"
    db_session.commit()
    day = date(2025, 3, 9)

    doctor = upsert_doctor(
        db_session,
        make_candidate(available_from_time="09:00:00", available_to_time="20:00:00"),
        caller,
        reference_date=day,
    )
    serialized = serialize_doctor(doctor, tz=clinic_timezone(clinic), reference_date=day)

    assert serialized["available_to_time"] == "00:00:00"
    assert serialized["available_from_time_local"] == "09:00:00"
    assert serialized["available_to_time_local"] == "20:00:00"
