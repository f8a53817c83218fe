"""
Shared fixtures.

The app runs against a throwaway SQLite file; every test starts from empty
tables. Callers are authenticated with tokens minted directly, so most tests
skip the login round trip.
"""

import itertools
import os
import tempfile
from datetime import date, timedelta

_db_dir = tempfile.mkdtemp(prefix="uniform-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'uniform.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Date, DateTime  # noqa: E402

from uniform.core.auth import Role, create_caller_token, hash_password  # noqa: E402
from uniform.db.database import engine  # noqa: E402
from uniform.db.tables import metadata  # noqa: E402
from uniform.main import app  # noqa: E402
from uniform.utils.dates import utcnow  # noqa: E402

from tests.helpers import PASSWORD, fetch, insert  # noqa: E402

PASSWORD_HASH = hash_password(PASSWORD)

NATIONAL_SCIENCE = {
    "ssc_stream": "SCIENCE", "ssc_gpa": 5.0, "ssc_year": 2021, "ssc_board": "Dhaka",
    "hsc_stream": "SCIENCE", "hsc_gpa": 5.0, "hsc_year": 2023, "hsc_board": "Dhaka",
}

MADRASHA_SCIENCE = {
    "dakhil_stream": "SCIENCE", "dakhil_gpa": 5.0, "dakhil_year": 2021, "dakhil_board": "Madrasah",
    "alim_stream": "SCIENCE", "alim_gpa": 5.0, "alim_year": 2023, "alim_board": "Madrasah",
}


@pytest.fixture(autouse=True)
def fresh_db():
    metadata.drop_all(engine)
    metadata.create_all(engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def headers():
    """headers(caller_id, role) -> Authorization header for that caller."""
    def _headers(caller_id: int, role: Role = Role.student) -> dict:
        token = create_caller_token(caller_id, f"{role.value.lower()}{caller_id}@example.com", role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def create_student():
    counter = itertools.count(1)

    def _create(exam_path="NATIONAL", **fields) -> int:
        n = next(counter)
        values = {
            "full_name": f"Student {n}",
            "email": f"student{n}@example.com",
            "password_hash": PASSWORD_HASH,
            "phone": "+8801712345678",
            "dob": date(2005, 1, 1),
            "medium": "Bangla",
            "exam_path": exam_path,
        }
        if exam_path == "NATIONAL":
            values.update(NATIONAL_SCIENCE)
        elif exam_path == "MADRASHA":
            values.update(MADRASHA_SCIENCE)
        values.update(fields)
        return insert("students", values, "student_id", dob=Date)
    return _create


@pytest.fixture
def create_institution():
    counter = itertools.count(1)

    def _create(name=None, **fields) -> int:
        n = next(counter)
        values = {"name": name or f"University {n}", "short_name": f"U{n}", **fields}
        return insert("institutions", values, "institution_id")
    return _create


@pytest.fixture
def create_admin():
    counter = itertools.count(1)

    def _create(institution_id, email=None) -> int:
        n = next(counter)
        values = {
            "email": email or f"admin{n}@example.com",
            "password_hash": PASSWORD_HASH,
            "institution_id": institution_id,
        }
        return insert("admins", values, "admin_id")
    return _create


@pytest.fixture
def create_system_admin():
    def _create(email="root@example.com") -> int:
        return insert("system_admins", {"email": email, "password_hash": PASSWORD_HASH}, "system_admin_id")
    return _create


@pytest.fixture
def create_unit():
    counter = itertools.count(1)

    def _create(institution_id, requirements=(), **fields) -> int:
        n = next(counter)
        values = {
            "institution_id": institution_id,
            "name": f"Unit {n}",
            "is_active": True,
            "auto_close_after_deadline": True,
            "application_deadline": utcnow() + timedelta(days=30),
            "max_applications": None,
        }
        values.update(fields)
        unit_id = insert("units", values, "unit_id", application_deadline=DateTime, exam_date=DateTime)
        for requirement in requirements:
            insert("unit_requirements", {"unit_id": unit_id, **requirement}, "requirement_id")
        return unit_id
    return _create


@pytest.fixture
def create_application():
    def _create(student_id, unit_id, reviewed_at=None, **fields) -> int:
        institution_id = fetch("SELECT institution_id FROM units WHERE unit_id = :uid", uid=unit_id)[0]["institution_id"]
        values = {
            "student_id": student_id,
            "unit_id": unit_id,
            "institution_id": institution_id,
            "applied_at": utcnow(),
            "reviewed_at": reviewed_at,
        }
        values.update(fields)
        return insert(
            "applications", values, "application_id",
            applied_at=DateTime, reviewed_at=DateTime, exam_date=DateTime
        )
    return _create
