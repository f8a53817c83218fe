"""Review workflow: approve, exam details and cancel."""

from datetime import datetime

import pytest

from uniform.core.auth import Role
from uniform.services.review_service import center_prefix
from uniform.utils.dates import utcnow

from tests.helpers import fetch


@pytest.fixture
def setup(create_student, create_institution, create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(institution)
    student = create_student()
    application = create_application(student, unit, center_preference="Dhaka")
    return {"institution": institution, "admin": admin, "unit": unit, "student": student,
            "application": application}


def approve(client, headers, admin, application, **body):
    return client.patch(
        f"/api/applications/{application}/approve",
        json=body or None,
        headers=headers(admin, Role.institution_admin),
    )


def test_approve(client, headers, setup):
    response = approve(client, headers, setup["admin"], setup["application"])

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "approved"
    assert data["reviewed_at"] is not None
    assert data["exam_center"] == "Dhaka"
    assert data["seat_no"] == "DHA00001"


def test_approve_twice(client, headers, setup):
    assert approve(client, headers, setup["admin"], setup["application"]).status_code == 200
    first = fetch("SELECT reviewed_at FROM applications WHERE application_id = :aid", aid=setup["application"])

    response = approve(client, headers, setup["admin"], setup["application"])

    assert response.status_code == 409
    assert response.json()["detail"] == "Application is already approved"
    again = fetch("SELECT reviewed_at FROM applications WHERE application_id = :aid", aid=setup["application"])
    assert again == first


def test_approve_with_exam_details(client, headers, setup):
    response = approve(
        client, headers, setup["admin"], setup["application"],
        seat_no="A-101", exam_date="2026-12-01T10:00:00", exam_time="10:00 AM",
        exam_center="Sylhet", notes="Bring original certificates"
    )

    data = response.json()
    assert data["seat_no"] == "A-101"
    assert data["exam_center"] == "Sylhet"
    assert data["exam_time"] == "10:00 AM"
    assert datetime.fromisoformat(data["exam_date"]) == datetime(2026, 12, 1, 10, 0)
    assert data["notes"] == "Bring original certificates"


def test_approve_uses_unit_exam_schedule(client, headers, create_student, create_institution,
                                         create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(
        institution, exam_center="Chattogram", exam_time="2:00 PM",
        exam_date=datetime(2026, 11, 20, 14, 0)
    )
    application = create_application(create_student(), unit)

    data = approve(client, headers, admin, application).json()

    assert data["exam_center"] == "Chattogram"
    assert data["exam_time"] == "2:00 PM"
    assert data["seat_no"] == "CTG00001"
    assert datetime.fromisoformat(data["exam_date"]) == datetime(2026, 11, 20, 14, 0)


def test_seat_numbers_count_per_center(client, headers, create_student, create_institution,
                                       create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(institution)
    dhaka = [create_application(create_student(), unit, center_preference="Dhaka") for _ in range(2)]
    rangpur = create_application(create_student(), unit, center_preference="Rangpur")
    general = create_application(create_student(), unit)

    seats = [approve(client, headers, admin, app).json()["seat_no"] for app in dhaka + [rangpur, general]]

    assert seats == ["DHA00001", "DHA00002", "RGP00001", "GEN00001"]


def test_seat_numbers_continue_after_cancel(client, headers, create_student, create_institution,
                                            create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(institution)
    first, second, third = [create_application(create_student(), unit, center_preference="Dhaka") for _ in range(3)]
    approve(client, headers, admin, first)
    approve(client, headers, admin, second)

    client.delete(f"/api/applications/{first}", headers=headers(admin, Role.institution_admin))
    seat = approve(client, headers, admin, third).json()["seat_no"]

    assert seat == "DHA00003"
    seats = [r["seat_no"] for r in fetch("SELECT seat_no FROM applications WHERE institution_id = :iid", iid=institution)]
    assert sorted(seats) == ["DHA00002", "DHA00003"]


def test_seat_numbers_shared_by_center_spellings(client, headers, create_student, create_institution,
                                                 create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(institution)
    new_name = create_application(create_student(), unit, center_preference="Chattogram")
    old_name = create_application(create_student(), unit, center_preference="Chittagong")

    seats = [approve(client, headers, admin, app).json()["seat_no"] for app in (new_name, old_name)]

    assert seats == ["CTG00001", "CTG00002"]


def test_seat_numbers_skip_manual_seats(client, headers, create_student, create_institution,
                                        create_admin, create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    unit = create_unit(institution)
    manual = create_application(create_student(), unit, center_preference="Sylhet")
    generated = create_application(create_student(), unit, center_preference="Sylhet")

    approve(client, headers, admin, manual, seat_no="SYL00040")
    seat = approve(client, headers, admin, generated).json()["seat_no"]

    assert seat == "SYL00041"


def test_center_prefix():
    assert center_prefix("Barisal") == "BAR"
    assert center_prefix("Mymensingh") == "MYM"
    assert center_prefix("Cox's Bazar") == "COX"
    assert center_prefix("AB") == "ABG"
    assert center_prefix("  ") == "GEN"
    assert center_prefix(None) == "GEN"


def test_other_institution_cannot_review(client, headers, setup, create_institution, create_admin):
    outsider = create_admin(create_institution())

    approve_response = approve(client, headers, outsider, setup["application"])
    cancel_response = client.delete(
        f"/api/applications/{setup['application']}", headers=headers(outsider, Role.institution_admin)
    )

    assert approve_response.status_code == 403
    assert cancel_response.status_code == 403
    row = fetch("SELECT reviewed_at FROM applications WHERE application_id = :aid", aid=setup["application"])
    assert row == [{"reviewed_at": None}]


def test_students_cannot_review(client, headers, setup):
    response = client.patch(
        f"/api/applications/{setup['application']}/approve", headers=headers(setup["student"])
    )

    assert response.status_code == 403


def test_approve_missing_application(client, headers, setup):
    assert approve(client, headers, setup["admin"], 999).status_code == 404


def test_cancel(client, headers, setup):
    response = client.delete(
        f"/api/applications/{setup['application']}", headers=headers(setup["admin"], Role.institution_admin)
    )

    assert response.status_code == 200
    assert fetch("SELECT application_id FROM applications") == []


def test_cancel_approved_application(client, headers, create_student, create_institution, create_admin,
                                     create_unit, create_application):
    institution = create_institution()
    admin = create_admin(institution)
    application = create_application(create_student(), create_unit(institution), reviewed_at=utcnow())

    response = client.delete(f"/api/applications/{application}", headers=headers(admin, Role.institution_admin))

    assert response.status_code == 200
    assert fetch("SELECT application_id FROM applications") == []


def test_set_exam_details_keeps_unset_fields(client, headers, setup):
    url = f"/api/applications/{setup['application']}/exam-details"
    admin_headers = headers(setup["admin"], Role.institution_admin)

    client.patch(url, json={"seat_no": "S-1", "exam_time": "9:00 AM"}, headers=admin_headers)
    response = client.patch(url, json={"exam_center": "Khulna"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["seat_no"] == "S-1"
    assert data["exam_time"] == "9:00 AM"
    assert data["exam_center"] == "Khulna"
    assert data["status"] == "under_review"
