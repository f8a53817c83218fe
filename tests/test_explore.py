"""Student exploration of eligible institutions and units."""

from datetime import timedelta

from uniform.utils.dates import utcnow


def test_eligible_institutions(client, headers, create_student, create_institution, create_unit):
    student = create_student(ssc_stream="ARTS", ssc_gpa=4.0, hsc_stream="ARTS", hsc_gpa=4.0)
    du = create_institution(name="Dhaka University")
    buet = create_institution(name="BUET")
    create_unit(du, name="Arts", requirements=[{"ssc_stream": "ARTS", "min_ssc_gpa": 3.5}])
    create_unit(du, name="Science", requirements=[{"ssc_stream": "SCIENCE"}])
    create_unit(du, name="Closed", application_deadline=utcnow() - timedelta(days=1))
    create_unit(buet, name="Engineering", requirements=[{"hsc_stream": "SCIENCE", "min_hsc_gpa": 5.0}])

    response = client.get("/api/explore/institutions", headers=headers(student))

    assert response.status_code == 200
    data = response.json()
    assert [i["name"] for i in data] == ["Dhaka University"]
    assert [u["name"] for u in data[0]["units"]] == ["Arts"]


def test_institution_units_are_flagged(client, headers, create_student, create_institution, create_unit):
    student = create_student()
    institution = create_institution()
    create_unit(institution, name="Arts", requirements=[{"ssc_stream": "ARTS"}])
    create_unit(institution, name="Medicine", requirements=[{"ssc_stream": "SCIENCE", "min_ssc_gpa": 5.0}])
    create_unit(institution, name="Late", application_deadline=utcnow() - timedelta(days=1))
    create_unit(institution, name="Hidden", is_active=False)

    response = client.get(f"/api/explore/institutions/{institution}/units", headers=headers(student))

    assert response.status_code == 200
    units = {u["name"]: (u["eligible"], u["is_open"]) for u in response.json()["units"]}
    assert units == {
        "Arts": (False, True),
        "Medicine": (True, True),
        "Late": (True, False),
    }


def test_unknown_institution(client, headers, create_student):
    response = client.get("/api/explore/institutions/999/units", headers=headers(create_student()))

    assert response.status_code == 404
