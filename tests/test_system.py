"""System administration: institutions, institution admins and stats."""

import pytest

from uniform.core.auth import Role

from tests.helpers import fetch


@pytest.fixture
def system_headers(headers, create_system_admin):
    return headers(create_system_admin(), Role.system_admin)


def test_create_and_list_institutions(client, system_headers, create_unit):
    response = client.post("/api/system/institutions", headers=system_headers, json={
        "name": "University of Chittagong", "short_name": "CU", "established_year": 1966,
    })
    assert response.status_code == 201
    institution_id = response.json()["institution_id"]
    create_unit(institution_id)

    duplicate = client.post("/api/system/institutions", headers=system_headers,
                            json={"name": "university of chittagong"})
    assert duplicate.status_code == 400

    listing = client.get("/api/system/institutions", headers=system_headers).json()
    assert [(i["short_name"], i["unit_count"], i["admin_count"]) for i in listing] == [("CU", 1, 0)]


def test_delete_institution_cascades(client, system_headers, create_institution, create_admin,
                                     create_unit, create_student, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    create_application(create_student(), create_unit(institution, requirements=[{"ssc_stream": "SCIENCE"}]))

    response = client.delete(f"/api/system/institutions/{institution}", headers=system_headers)

    assert response.status_code == 200
    assert fetch("SELECT unit_id FROM units") == []
    assert fetch("SELECT requirement_id FROM unit_requirements") == []
    assert fetch("SELECT application_id FROM applications") == []
    assert fetch("SELECT institution_id FROM admins WHERE admin_id = :aid", aid=admin) == [{"institution_id": None}]
    assert client.delete(f"/api/system/institutions/{institution}", headers=system_headers).status_code == 404


def test_create_and_unassign_admin(client, headers, system_headers, create_institution):
    institution = create_institution(name="Jahangirnagar University")
    body = {
        "email": "admin@juniv.edu", "password": "secret123",
        "password_confirmation": "secret123", "institution_id": institution,
    }

    response = client.post("/api/system/admins", headers=system_headers, json=body)
    assert response.status_code == 201
    admin = response.json()
    assert admin["institution_name"] == "Jahangirnagar University"
    assert client.post("/api/system/admins", headers=system_headers, json=body).status_code == 400

    login = client.post("/api/auth/admin/login", json={"email": "admin@juniv.edu", "password": "secret123"})
    assert login.status_code == 200

    unassign = client.delete(f"/api/system/admins/{admin['admin_id']}/institution", headers=system_headers)
    assert unassign.status_code == 200
    units = client.get("/api/units", headers=headers(admin["admin_id"], Role.institution_admin))
    assert units.status_code == 403


def test_create_admin_for_missing_institution(client, system_headers):
    response = client.post("/api/system/admins", headers=system_headers, json={
        "email": "nobody@example.com", "password": "secret123",
        "password_confirmation": "secret123", "institution_id": 999,
    })

    assert response.status_code == 404


def test_stats(client, system_headers, create_institution, create_unit, create_student, create_application):
    institution = create_institution()
    unit = create_unit(institution)
    create_application(create_student(), unit)
    create_student()

    stats = client.get("/api/system/stats", headers=system_headers).json()

    assert stats == {"institutions": 1, "units": 1, "students": 2, "applications": 1}


def test_system_routes_require_system_admin(client, headers, create_student):
    response = client.get("/api/system/stats", headers=headers(create_student()))

    assert response.status_code == 403
