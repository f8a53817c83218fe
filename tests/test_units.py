"""Unit ruleset management by institution admins."""

from datetime import timedelta

import pytest

from uniform.core.auth import Role
from uniform.utils.dates import utcnow

from tests.helpers import fetch


@pytest.fixture
def admin_headers(headers, create_institution, create_admin):
    institution = create_institution()
    return headers(create_admin(institution), Role.institution_admin)


def create(client, admin_headers, **body):
    payload = {"name": "Science", **body}
    return client.post("/api/units", json=payload, headers=admin_headers)


def test_create_unit_with_requirements(client, admin_headers):
    response = create(client, admin_headers, max_applications=500, requirements=[
        {"ssc_stream": "SCIENCE", "hsc_stream": "SCIENCE", "min_combined_gpa": 8.0},
        {"ssc_stream": "ARTS", "min_ssc_gpa": 4.5},
    ])

    assert response.status_code == 201
    unit = response.json()
    assert unit["is_active"] is True
    assert unit["auto_close_after_deadline"] is True
    assert unit["max_applications"] == 500
    assert [r["ssc_stream"] for r in unit["requirements"]] == ["SCIENCE", "ARTS"]
    assert unit["requirements"][1]["hsc_stream"] is None


def test_unit_names_unique_per_institution(client, headers, admin_headers, create_institution, create_admin):
    assert create(client, admin_headers, name="Arts").status_code == 201
    assert create(client, admin_headers, name="arts").status_code == 400

    other = headers(create_admin(create_institution()), Role.institution_admin)
    assert create(client, other, name="Arts").status_code == 201


def test_duplicate_stream_combination_rejected(client, admin_headers):
    response = create(client, admin_headers, requirements=[
        {"ssc_stream": "SCIENCE", "min_ssc_gpa": 4.0},
        {"ssc_stream": "SCIENCE", "min_ssc_gpa": 3.0},
    ])

    assert response.status_code == 400


def test_invalid_requirement_values(client, admin_headers):
    too_high = create(client, admin_headers, requirements=[{"min_ssc_gpa": 5.5}])
    backwards = create(client, admin_headers, requirements=[{"min_hsc_year": 2024, "max_hsc_year": 2020}])

    assert too_high.status_code == 400
    assert backwards.status_code == 400


def test_list_and_get(client, admin_headers):
    unit_id = create(client, admin_headers, name="Business").json()["unit_id"]
    create(client, admin_headers, name="Law")

    listing = client.get("/api/units", headers=admin_headers).json()
    assert listing["total"] == 2
    assert {u["name"] for u in listing["units"]} == {"Business", "Law"}

    unit = client.get(f"/api/units/{unit_id}", headers=admin_headers).json()
    assert unit["name"] == "Business"
    assert unit["application_count"] == 0


def test_update_replaces_requirements(client, admin_headers):
    unit_id = create(client, admin_headers, requirements=[{"ssc_stream": "SCIENCE"}]).json()["unit_id"]

    response = client.put(f"/api/units/{unit_id}", headers=admin_headers, json={
        "description": "Faculty of Science",
        "is_active": False,
        "requirements": [{"ssc_stream": "ARTS"}, {"ssc_stream": "COMMERCE"}],
    })

    assert response.status_code == 200
    unit = response.json()
    assert unit["description"] == "Faculty of Science"
    assert unit["is_active"] is False
    assert sorted(r["ssc_stream"] for r in unit["requirements"]) == ["ARTS", "COMMERCE"]


def test_update_deadline_must_be_in_future(client, admin_headers):
    unit_id = create(client, admin_headers).json()["unit_id"]
    past = (utcnow() - timedelta(days=1)).isoformat()

    response = client.put(f"/api/units/{unit_id}", headers=admin_headers, json={"application_deadline": past})

    assert response.status_code == 400


def test_update_clears_deadline_and_capacity(client, admin_headers):
    deadline = (utcnow() + timedelta(days=10)).isoformat()
    unit_id = create(
        client, admin_headers, description="Faculty of Science",
        application_deadline=deadline, max_applications=300
    ).json()["unit_id"]

    response = client.put(
        f"/api/units/{unit_id}", headers=admin_headers,
        json={"application_deadline": None, "max_applications": None, "is_active": None}
    )

    assert response.status_code == 200
    unit = response.json()
    assert unit["application_deadline"] is None
    assert unit["max_applications"] is None
    assert unit["is_active"] is True
    assert unit["description"] == "Faculty of Science"


def test_update_keeps_omitted_fields(client, admin_headers):
    deadline = (utcnow() + timedelta(days=10)).isoformat()
    unit_id = create(client, admin_headers, application_deadline=deadline, max_applications=300).json()["unit_id"]

    response = client.put(f"/api/units/{unit_id}", headers=admin_headers, json={"description": "Evening shift"})

    unit = response.json()
    assert unit["description"] == "Evening shift"
    assert unit["application_deadline"] is not None
    assert unit["max_applications"] == 300


def test_add_and_remove_requirements(client, admin_headers):
    unit_id = create(client, admin_headers, requirements=[{"ssc_stream": "SCIENCE"}]).json()["unit_id"]
    url = f"/api/units/{unit_id}/requirements"

    duplicate = client.post(url, headers=admin_headers, json={"requirements": [{"ssc_stream": "SCIENCE"}]})
    assert duplicate.status_code == 400

    added = client.post(url, headers=admin_headers, json={"requirements": [{"ssc_stream": "ARTS"}]})
    assert added.status_code == 201
    requirement_id = added.json()["requirements"][-1]["requirement_id"]

    removed = client.delete(f"{url}/{requirement_id}", headers=admin_headers)
    assert removed.status_code == 200
    assert [r["ssc_stream"] for r in removed.json()["requirements"]] == ["SCIENCE"]

    assert client.delete(f"{url}/{requirement_id}", headers=admin_headers).status_code == 404


def test_unit_exam_details(client, admin_headers):
    unit_id = create(client, admin_headers).json()["unit_id"]

    response = client.patch(
        f"/api/units/{unit_id}/exam-details", headers=admin_headers,
        json={"exam_date": "2026-12-10T09:00:00", "exam_center": "Dhaka"}
    )

    assert response.status_code == 200
    assert response.json()["exam_center"] == "Dhaka"


def test_delete_unit(client, admin_headers, create_student, create_application):
    empty = create(client, admin_headers, name="Empty").json()["unit_id"]
    busy = create(client, admin_headers, name="Busy").json()["unit_id"]
    create_application(create_student(), busy)

    assert client.delete(f"/api/units/{busy}", headers=admin_headers).status_code == 400
    assert client.delete(f"/api/units/{empty}", headers=admin_headers).status_code == 200
    assert [r["unit_id"] for r in fetch("SELECT unit_id FROM units")] == [busy]


def test_other_institution_units_are_forbidden(client, headers, admin_headers, create_institution, create_unit):
    foreign = create_unit(create_institution())

    assert client.get(f"/api/units/{foreign}", headers=admin_headers).status_code == 403
    assert client.delete(f"/api/units/{foreign}", headers=admin_headers).status_code == 403
    assert client.get("/api/units/999", headers=admin_headers).status_code == 404
