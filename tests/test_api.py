from uuid import uuid4

from clinica.models import Doctor, User
from clinica.services.sessions import issue_session


def test_upsert_requires_a_session(client, doctor_payload):
    response = client.post("/api/v1/doctors", json=doctor_payload)

    assert response.status_code == 401
    assert response.json()["detail"] == "Usuário não autenticado"


def test_invalid_times_are_rejected_before_authentication(client, doctor_payload):
    doctor_payload.update(available_from_time="18:00:00", available_to_time="08:00:00")

    response = client.post("/api/v1/doctors", json=doctor_payload)

    assert response.status_code == 422
    fields = response.json()["detail"]["fields"]
    assert list(fields) == ["available_to_time"]


def test_low_price_is_rejected(client, auth_headers, doctor_payload):
    doctor_payload["appointment_price"] = 0.5

    response = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)

    assert response.status_code == 422
    assert "appointment_price" in response.json()["detail"]["fields"]


def test_create_list_and_delete_doctor(client, auth_headers, doctor_payload, clinic):
    created = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)

    assert created.status_code == 200
    doctor = created.json()["doctor"]
    assert doctor["clinic_id"] == str(clinic.id)
    assert doctor["appointment_price_in_cents"] == 15000
    assert doctor["available_from_time"] == "11:00:00"
    assert doctor["available_to_time"] == "21:00:00"
    assert doctor["available_from_time_local"] == "08:00:00"
    assert doctor["weekday_range"] == "linear"

    listing = client.get("/api/v1/doctors", headers=auth_headers)
    assert listing.status_code == 200
    assert [item["id"] for item in listing.json()["doctors"]] == [doctor["id"]]

    deleted = client.delete(f"/api/v1/doctors/{doctor['id']}", headers=auth_headers)
    assert deleted.status_code == 204

    listing = client.get("/api/v1/doctors", headers=auth_headers)
    assert listing.json()["doctors"] == []


def test_update_keeps_a_single_row(client, auth_headers, doctor_payload, db_session):
    created = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)
    doctor_id = created.json()["doctor"]["id"]

    doctor_payload.update(id=doctor_id, name="Dra. Ana Maria")
    first = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)
    second = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert second.json()["doctor"]["name"] == "Dra. Ana Maria"
    assert db_session.query(Doctor).count() == 1


def test_other_clinic_gets_the_same_denial_as_missing_doctor(
    client, auth_headers, other_auth_headers, doctor_payload
):
    created = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)
    doctor_id = created.json()["doctor"]["id"]

    foreign = client.delete(f"/api/v1/doctors/{doctor_id}", headers=other_auth_headers)
    missing = client.delete(f"/api/v1/doctors/{uuid4()}", headers=other_auth_headers)
    doctor_payload["id"] = doctor_id
    foreign_update = client.post(
        "/api/v1/doctors", json=doctor_payload, headers=other_auth_headers
    )

    assert foreign.status_code == missing.status_code == foreign_update.status_code == 404
    assert foreign.json() == missing.json() == {"detail": "Médico não encontrado"}

    still_there = client.get("/api/v1/doctors", headers=auth_headers)
    assert [item["id"] for item in still_there.json()["doctors"]] == [doctor_id]


def test_clinic_onboarding_flow(client, db_session):

    user = User(name="Nova Gestora", email="gestora@example.com")
    db_session.add(user)
    db_session.flush()
    headers = {"Authorization": f"Bearer {issue_session(db_session, user).token}"}
    db_session.commit()

    no_clinic = client.get("/api/v1/dashboard", headers=headers)
    assert no_clinic.status_code == 403
    assert no_clinic.json()["detail"] == "Usuário não associado a uma clínica"
    assert client.get("/api/v1/doctors", headers=headers).status_code == 403

    created = client.post(
        "/api/v1/clinics",
        json={"name": "Clínica Nova", "timezone": "America/Sao_Paulo"},
        headers=headers,
    )
    assert created.status_code == 201
    clinic = created.json()["clinic"]
    assert clinic["timezone"] == "America/Sao_Paulo"

    dashboard = client.get("/api/v1/dashboard", headers=headers)
    assert dashboard.status_code == 200
    assert dashboard.json()["clinic"]["id"] == clinic["id"]
    assert dashboard.json()["user"]["email"] == "gestora@example.com"

    again = client.post("/api/v1/clinics", json={"name": "Outra"}, headers=headers)
    assert again.status_code == 409


def test_clinic_with_unknown_timezone_is_rejected(client, db_session, auth_headers):
    response = client.post(
        "/api/v1/clinics",
        json={"name": "Clínica Lunar", "timezone": "Moon/Base"},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert "timezone" in response.json()["detail"]["fields"]


def test_dashboard_requires_a_session(client):
    response = client.get("/api/v1/dashboard")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_specialty_catalog(client):
    response = client.get("/api/v1/specialties")

    assert response.status_code == 200
    values = [item["value"] for item in response.json()["specialties"]]
    assert "cardiologia" in values


def test_every_failing_field_is_reported_over_http(client, auth_headers, doctor_payload):
    doctor_payload.update(name="", available_from_weekday="segunda")

    response = client.post("/api/v1/doctors", json=doctor_payload, headers=auth_headers)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Dados do médico inválidos."
    assert detail["fields"] == {
        "name": ["Nome é obrigatório"],
        "available_from_weekday": ["Dia da semana inválido"],
    }


def test_malformed_body_uses_the_field_error_shape(client, auth_headers):
    response = client.post("/api/v1/doctors", json=["Dr. Ana"], headers=auth_headers)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Dados inválidos."
    assert list(detail["fields"]) == ["body"]


def test_malformed_doctor_id_in_path(client, auth_headers):
    response = client.delete("/api/v1/doctors/not-a-uuid", headers=auth_headers)

    assert response.status_code == 422
    assert list(response.json()["detail"]["fields"]) == ["doctor_id"]
