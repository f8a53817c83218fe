"""
Student Routes

GET /students/profile - Get own profile with academic record
PUT /students/profile - Update profile (only provided fields)
GET /students/academic-info - Get own academic record
GET /students/applications - Get my applications
DELETE /students/applications/{application_id} - Withdraw an application under review
GET /students/applications/{application_id}/admit-card - Admit card of an approved application
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import Date, DateTime
from sqlalchemy.exc import IntegrityError

from uniform.core.auth import AuthenticatedCaller, get_current_student
from uniform.core.errors import NotFound, ValidationError
from uniform.db.database import execute_raw_sql, get_db_session, typed_text
from uniform.schemas.schemas import (
    AcademicInfoResponse, AdmitCardResponse, MessageResponse, StudentApplicationResponse,
    StudentProfileResponse, StudentUpdate
)
from uniform.services.application_service import get_application_service
from uniform.services.profile_service import ACADEMIC_COLUMNS, record_columns, record_from_row
from uniform.utils.dates import as_date, as_datetime, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])

PROFILE_COLUMNS = ", ".join(
    ["student_id", "full_name", "email", "phone", "address", "dob", "exam_path", "medium",
     "created_at", "updated_at"] + ACADEMIC_COLUMNS
)


def _load_profile(student_id: int) -> dict:
    rows = execute_raw_sql(f"SELECT {PROFILE_COLUMNS} FROM students WHERE student_id = :id", {"id": student_id})
    if not rows:
        raise NotFound("Student not found")
    return rows[0]


def _profile_response(row: dict) -> StudentProfileResponse:
    return StudentProfileResponse(
        student_id=row["student_id"], full_name=row["full_name"], email=row["email"],
        phone=row["phone"], address=row["address"], dob=as_date(row["dob"]),
        exam_path=row["exam_path"], medium=row["medium"],
        academic_record=record_from_row(row),
        created_at=as_datetime(row["created_at"]), updated_at=as_datetime(row["updated_at"])
    )


def email_taken(db, email: str, student_id: int) -> bool:
    return db.execute(
        typed_text("SELECT student_id FROM students WHERE LOWER(email) = :email AND student_id != :id"),
        {"email": email, "id": student_id}
    ).fetchone() is not None


@router.get("/profile", response_model=StudentProfileResponse)
async def get_profile(student: AuthenticatedCaller = Depends(get_current_student)):
    """Get current student's profile with the academic record of their exam path."""
    return _profile_response(_load_profile(student.id))


@router.put("/profile", response_model=StudentProfileResponse)
async def update_profile(data: StudentUpdate, student: AuthenticatedCaller = Depends(get_current_student)):
    """
    Update student profile. Only provided fields are updated.

    A new academic record replaces the old one entirely; switching exam path
    clears every field of the previous path.
    """
    params = {"id": student.id}
    for field in ["full_name", "phone", "address", "dob", "medium"]:
        value = getattr(data, field)
        if value is not None:
            params[field] = value.value if hasattr(value, "value") else value
    if data.email is not None:
        params["email"] = data.email.lower()
    if data.academic_record is not None:
        params.update(record_columns(data.academic_record))

    fields = [name for name in params if name != "id"]
    if not fields:
        raise ValidationError("No fields to update")

    with get_db_session() as db:
        if "email" in params and email_taken(db, params["email"], student.id):
            raise ValidationError("Email already registered")

        params["now"] = utcnow()
        assignments = ", ".join(f"{name} = :{name}" for name in fields)
        try:
            db.execute(
                typed_text(
                    f"UPDATE students SET {assignments}, updated_at = :now WHERE student_id = :id",
                    dob=Date, now=DateTime
                ),
                params
            )
        except IntegrityError as exc:
            raise ValidationError("Email already registered") from exc

    logger.info("Student %s updated profile fields: %s", student.id, sorted(fields))
    return _profile_response(_load_profile(student.id))


@router.get("/academic-info", response_model=AcademicInfoResponse)
async def get_academic_info(student: AuthenticatedCaller = Depends(get_current_student)):
    """Only the academic record, as used by the eligibility check."""
    row = _load_profile(student.id)
    return AcademicInfoResponse(
        student_id=row["student_id"], exam_path=row["exam_path"], medium=row["medium"],
        academic_record=record_from_row(row)
    )


@router.get("/applications", response_model=List[StudentApplicationResponse])
async def get_my_applications(student: AuthenticatedCaller = Depends(get_current_student)):
    """Get all my applications with unit and institution names, newest first."""
    return get_application_service().list_for_student(student)


@router.delete("/applications/{application_id}", response_model=MessageResponse)
async def withdraw_application(application_id: int, student: AuthenticatedCaller = Depends(get_current_student)):
    """Withdraw an application. Not possible once it is approved."""
    get_application_service().withdraw(student, application_id)
    return MessageResponse(message="Application withdrawn")


@router.get("/applications/{application_id}/admit-card", response_model=AdmitCardResponse)
async def get_admit_card(application_id: int, student: AuthenticatedCaller = Depends(get_current_student)):
    """Admit card data (seat number, exam schedule) for an approved application."""
    return get_application_service().admit_card(student, application_id)
