"""
Unit Routes (institution admin)

POST /units - Create unit with requirements
GET /units - List my institution's units
GET /units/{unit_id} - Get unit details
PUT /units/{unit_id} - Update unit
DELETE /units/{unit_id} - Delete unit
POST /units/{unit_id}/requirements - Add requirement rows
DELETE /units/{unit_id}/requirements/{requirement_id} - Remove a requirement row
PATCH /units/{unit_id}/exam-details - Set unit exam schedule
"""

from fastapi import APIRouter, Depends, Query

from uniform.core.auth import AuthenticatedCaller, get_current_institution_admin
from uniform.schemas.schemas import (
    MessageResponse, RequirementsAdd, UnitCreate, UnitExamDetails, UnitListResponse,
    UnitResponse, UnitUpdate
)
from uniform.services.unit_service import get_unit_service

router = APIRouter(prefix="/units", tags=["Units"])


@router.post("", response_model=UnitResponse, status_code=201)
async def create_unit(data: UnitCreate, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    """
    Create a unit.

    Each requirement row is an alternative admission track; a student is
    eligible if any one row is satisfied. A unit without rows admits everyone.
    """
    return get_unit_service().create_unit(admin, data)


@router.get("", response_model=UnitListResponse)
async def list_units(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    return get_unit_service().list_units(admin, page=page, page_size=page_size)


@router.get("/{unit_id}", response_model=UnitResponse)
async def get_unit(unit_id: int, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    return get_unit_service().get_unit(admin, unit_id)


@router.put("/{unit_id}", response_model=UnitResponse)
async def update_unit(unit_id: int, data: UnitUpdate, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    """Update unit. Only provided fields are updated; a requirement list replaces all rows."""
    return get_unit_service().update_unit(admin, unit_id, data)


@router.delete("/{unit_id}", response_model=MessageResponse)
async def delete_unit(unit_id: int, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    get_unit_service().delete_unit(admin, unit_id)
    return MessageResponse(message="Unit deleted")


@router.post("/{unit_id}/requirements", response_model=UnitResponse, status_code=201)
async def add_requirements(
    unit_id: int,
    data: RequirementsAdd,
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    return get_unit_service().add_requirements(admin, unit_id, data.requirements)


@router.delete("/{unit_id}/requirements/{requirement_id}", response_model=UnitResponse)
async def remove_requirement(
    unit_id: int,
    requirement_id: int,
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    return get_unit_service().remove_requirement(admin, unit_id, requirement_id)


@router.patch("/{unit_id}/exam-details", response_model=UnitResponse)
async def set_exam_details(
    unit_id: int,
    data: UnitExamDetails,
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    """Unit-level exam date, time and center, used as defaults when approving."""
    return get_unit_service().set_exam_details(admin, unit_id, data)
