"""
System Admin Routes

POST /system/institutions - Create institution
GET /system/institutions - List institutions with unit/admin counts
DELETE /system/institutions/{institution_id} - Delete institution (units and applications go with it)
POST /system/admins - Create institution admin
DELETE /system/admins/{admin_id}/institution - Unassign admin from its institution
GET /system/stats - Platform totals
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from uniform.core.auth import AuthenticatedCaller, get_current_system_admin, hash_password
from uniform.core.errors import NotFound, ValidationError
from uniform.db.database import execute_raw_sql, fetch_one, get_db_session, typed_text
from uniform.schemas.schemas import (
    AdminResponse, InstitutionAdminCreate, InstitutionCreate, InstitutionResponse,
    MessageResponse, SystemStatsResponse
)
from uniform.utils.dates import as_datetime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System Admin"])

INSTITUTION_FIELDS = [
    "name", "short_name", "type", "ownership", "email", "phone", "website",
    "address", "description", "established_year", "logo_url",
]


def _institution_response(r: dict) -> InstitutionResponse:
    return InstitutionResponse(
        institution_id=r["institution_id"],
        **{field: r[field] for field in INSTITUTION_FIELDS},
        unit_count=r.get("unit_count") or 0,
        admin_count=r.get("admin_count") or 0,
        created_at=as_datetime(r["created_at"])
    )


@router.post("/institutions", response_model=InstitutionResponse, status_code=201)
async def create_institution(data: InstitutionCreate, admin: AuthenticatedCaller = Depends(get_current_system_admin)):
    """Create a new institution. Names are unique (case-insensitive)."""
    params = {field: getattr(data, field) for field in INSTITUTION_FIELDS}
    params["name"] = data.name.strip()

    with get_db_session() as db:
        taken = db.execute(
            typed_text("SELECT institution_id FROM institutions WHERE LOWER(name) = LOWER(:name)"),
            {"name": params["name"]}
        ).fetchone()
        if taken:
            raise ValidationError("An institution with this name already exists")

        columns = ", ".join(INSTITUTION_FIELDS)
        placeholders = ", ".join(f":{field}" for field in INSTITUTION_FIELDS)
        institution_id = db.execute(
            typed_text(f"INSERT INTO institutions ({columns}) VALUES ({placeholders}) RETURNING institution_id"),
            params
        ).fetchone()[0]
        row = fetch_one(db, "SELECT * FROM institutions WHERE institution_id = :iid", {"iid": institution_id})

    logger.info("System admin %s created institution %s '%s'", admin.id, institution_id, params["name"])
    return _institution_response(row)


@router.get("/institutions", response_model=List[InstitutionResponse])
async def list_institutions(admin: AuthenticatedCaller = Depends(get_current_system_admin)):
    rows = execute_raw_sql("""
        SELECT i.*,
               (SELECT COUNT(*) FROM units u WHERE u.institution_id = i.institution_id) AS unit_count,
               (SELECT COUNT(*) FROM admins a WHERE a.institution_id = i.institution_id) AS admin_count
        FROM institutions i
        ORDER BY i.name
    """)
    return [_institution_response(r) for r in rows]


@router.delete("/institutions/{institution_id}", response_model=MessageResponse)
async def delete_institution(institution_id: int, admin: AuthenticatedCaller = Depends(get_current_system_admin)):
    """Delete an institution with all of its units, requirements and applications."""
    with get_db_session() as db:
        result = db.execute(
            typed_text("DELETE FROM institutions WHERE institution_id = :iid"),
            {"iid": institution_id}
        )
        if result.rowcount == 0:
            raise NotFound("Institution not found")

    logger.warning("System admin %s deleted institution %s", admin.id, institution_id)
    return MessageResponse(message="Institution deleted")


@router.post("/admins", response_model=AdminResponse, status_code=201)
async def create_institution_admin(
    data: InstitutionAdminCreate,
    admin: AuthenticatedCaller = Depends(get_current_system_admin)
):
    """Create an institution admin account assigned to an institution."""
    email = data.email.lower()
    with get_db_session() as db:
        institution = db.execute(
            typed_text("SELECT name FROM institutions WHERE institution_id = :iid"),
            {"iid": data.institution_id}
        ).fetchone()
        if not institution:
            raise NotFound("Institution not found")

        taken = db.execute(
            typed_text("SELECT admin_id FROM admins WHERE LOWER(email) = :email"),
            {"email": email}
        ).fetchone()
        if taken:
            raise ValidationError("Email already registered")

        admin_id = db.execute(
            typed_text("""
                INSERT INTO admins (email, password_hash, institution_id)
                VALUES (:email, :password_hash, :iid)
                RETURNING admin_id
            """),
            {"email": email, "password_hash": hash_password(data.password), "iid": data.institution_id}
        ).fetchone()[0]

    logger.info("System admin %s created admin %s for institution %s", admin.id, admin_id, data.institution_id)
    return AdminResponse(
        admin_id=admin_id, email=email, institution_id=data.institution_id, institution_name=institution[0]
    )


@router.delete("/admins/{admin_id}/institution", response_model=MessageResponse)
async def unassign_admin(admin_id: int, admin: AuthenticatedCaller = Depends(get_current_system_admin)):
    """Remove an admin from its institution. The account stays but can no longer manage anything."""
    with get_db_session() as db:
        result = db.execute(
            typed_text("UPDATE admins SET institution_id = NULL WHERE admin_id = :aid"),
            {"aid": admin_id}
        )
        if result.rowcount == 0:
            raise NotFound("Admin not found")

    logger.info("System admin %s unassigned admin %s", admin.id, admin_id)
    return MessageResponse(message="Admin unassigned from institution")


@router.get("/stats", response_model=SystemStatsResponse)
async def get_stats(admin: AuthenticatedCaller = Depends(get_current_system_admin)):
    row = execute_raw_sql("""
        SELECT
            (SELECT COUNT(*) FROM institutions) AS institutions,
            (SELECT COUNT(*) FROM units) AS units,
            (SELECT COUNT(*) FROM students) AS students,
            (SELECT COUNT(*) FROM applications) AS applications
    """)[0]
    return SystemStatsResponse(**row)
