"""
Authentication Routes

POST /auth/register - Register new student account
POST /auth/login - Student login
POST /auth/admin/login - Institution admin login
POST /auth/system-admin/login - System admin login
DELETE /auth/account - Delete own student account (password confirmation)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import Date
from sqlalchemy.exc import IntegrityError

from uniform.core.auth import (
    AuthenticatedCaller, Role, create_caller_token, get_current_student,
    hash_password, verify_password
)
from uniform.core.errors import AuthenticationError, ValidationError
from uniform.db.database import execute_raw_sql, get_db_session, typed_text
from uniform.schemas.schemas import (
    DeleteAccountRequest, LoginRequest, MessageResponse, RegisterRequest, TokenResponse
)
from uniform.services.profile_service import ACADEMIC_COLUMNS, record_columns

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new student account.

    The academic record is optional here and can be completed later with
    PUT /students/profile; applying requires it.
    """
    values = {
        "full_name": request.full_name,
        "email": request.email.lower(),
        "password_hash": hash_password(request.password),
        "phone": request.phone,
        "address": request.address,
        "dob": request.dob,
        "medium": request.medium.value if request.medium else None,
        "exam_path": None,
        **{column: None for column in ACADEMIC_COLUMNS},
    }
    if request.academic_record is not None:
        values.update(record_columns(request.academic_record))

    with get_db_session() as db:
        # Check email exists
        existing = db.execute(
            typed_text("SELECT student_id FROM students WHERE LOWER(email) = :email"),
            {"email": values["email"]}
        )
        if existing.fetchone():
            raise ValidationError("Email already registered")

        columns = ", ".join(values)
        placeholders = ", ".join(f":{column}" for column in values)
        try:
            db.execute(
                typed_text(f"INSERT INTO students ({columns}) VALUES ({placeholders})", dob=Date),
                values
            )
        except IntegrityError as exc:
            raise ValidationError("Email already registered") from exc

    logger.info("Student registered: %s", values["email"])
    return MessageResponse(message="Registered successfully. Please login.")


def _login(request: LoginRequest, table: str, id_column: str, role: Role) -> TokenResponse:
    rows = execute_raw_sql(
        f"SELECT {id_column} AS id, email, password_hash FROM {table} WHERE LOWER(email) = :email",
        {"email": request.email.lower()}
    )
    if not rows or not verify_password(request.password, rows[0]["password_hash"]):
        logger.debug("Failed %s login for %s", role.value, request.email)
        raise AuthenticationError("Invalid email or password")

    account = rows[0]
    token = create_caller_token(account["id"], account["email"], role)
    return TokenResponse(access_token=token, id=account["id"], role=role.value)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Student login.

    Include token in requests: Authorization: Bearer <token>
    """
    return _login(request, "students", "student_id", Role.student)


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(request: LoginRequest):
    """Institution admin login."""
    return _login(request, "admins", "admin_id", Role.institution_admin)


@router.post("/system-admin/login", response_model=TokenResponse)
async def system_admin_login(request: LoginRequest):
    """System admin login."""
    return _login(request, "system_admins", "system_admin_id", Role.system_admin)


@router.delete("/account", response_model=MessageResponse)
async def delete_account(request: DeleteAccountRequest, student: AuthenticatedCaller = Depends(get_current_student)):
    """Delete own student account. Applications are removed with it."""
    with get_db_session() as db:
        row = db.execute(
            typed_text("SELECT password_hash FROM students WHERE student_id = :id"),
            {"id": student.id}
        ).fetchone()
        if not verify_password(request.password, row[0]):
            raise ValidationError("Password is incorrect")
        db.execute(typed_text("DELETE FROM students WHERE student_id = :id"), {"id": student.id})

    logger.info("Student %s deleted their account", student.id)
    return MessageResponse(message="Account deleted successfully")
