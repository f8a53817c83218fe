"""
Application Routes

POST /applications - Apply to a unit (student only)
GET /applications - List my institution's applications, grouped by unit (institution admin)
GET /applications/{application_id} - Application detail for review (institution admin)
PATCH /applications/{application_id}/approve - Approve application (institution admin)
PATCH /applications/{application_id}/exam-details - Set seat and exam schedule (institution admin)
DELETE /applications/{application_id} - Cancel application (institution admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from uniform.core.auth import AuthenticatedCaller, get_current_institution_admin, get_current_student
from uniform.schemas.schemas import (
    ApplicationCreate, ApplicationDetail, ApplicationListResponse, ApplicationResponse,
    ApplicationStatus, ApproveRequest, ExamDetailsUpdate, ExamPath, Medium, MessageResponse
)
from uniform.services.application_service import ApplicationFilter, get_application_service
from uniform.services.review_service import get_review_service

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", response_model=ApplicationResponse, status_code=201)
async def apply(data: ApplicationCreate, student: AuthenticatedCaller = Depends(get_current_student)):
    """
    Apply to a unit.

    The unit must be active, not past an auto-closing deadline and below its
    application cap, and the student's academic record must satisfy at
    least one of its requirement rows. One application per unit.
    """
    return get_application_service().submit(student, data)


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    unit_id: Optional[int] = Query(None),
    status: Optional[ApplicationStatus] = Query(None),
    exam_path: Optional[ExamPath] = Query(None),
    medium: Optional[Medium] = Query(None),
    board: Optional[str] = Query(None, max_length=50),
    center: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=100, description="Student name, email or unit name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    """List applications to the admin's institution, newest first, grouped by unit."""
    filters = ApplicationFilter(
        unit_id=unit_id, exam_path=exam_path, medium=medium, board=board,
        status=status, center=center, search=search
    )
    return get_application_service().list_for_institution(admin, filters, page=page, page_size=page_size)


@router.get("/{application_id}", response_model=ApplicationDetail)
async def get_application(application_id: int, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    """Full application detail with the applicant's academic record."""
    return get_application_service().get_by_id(admin, application_id)


@router.patch("/{application_id}/approve", response_model=ApplicationResponse)
async def approve_application(
    application_id: int,
    data: Optional[ApproveRequest] = None,
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    """
    Approve an application under review.

    Seat number, exam date/time/center may be supplied; missing ones are
    taken from the unit or generated. Approving twice returns 409.
    """
    return get_review_service().approve(admin, application_id, data)


@router.patch("/{application_id}/exam-details", response_model=ApplicationResponse)
async def set_exam_details(
    application_id: int,
    data: ExamDetailsUpdate,
    admin: AuthenticatedCaller = Depends(get_current_institution_admin)
):
    """Set seat number and exam schedule on an application."""
    return get_review_service().set_exam_details(admin, application_id, data)


@router.delete("/{application_id}", response_model=MessageResponse)
async def cancel_application(application_id: int, admin: AuthenticatedCaller = Depends(get_current_institution_admin)):
    """Cancel (permanently delete) an application."""
    get_review_service().cancel(admin, application_id)
    return MessageResponse(message="Application cancelled")
