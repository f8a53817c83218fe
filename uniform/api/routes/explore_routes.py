"""
Explore Routes

GET /explore/institutions - Institutions with open units I am eligible for
GET /explore/institutions/{institution_id}/units - All active units of an institution, flagged eligible
"""

from typing import List

from fastapi import APIRouter, Depends

from uniform.core.auth import AuthenticatedCaller, get_current_student
from uniform.schemas.schemas import ExploreInstitution
from uniform.services.explore_service import get_explore_service

router = APIRouter(prefix="/explore", tags=["Explore"])


@router.get("/institutions", response_model=List[ExploreInstitution])
async def eligible_institutions(student: AuthenticatedCaller = Depends(get_current_student)):
    """
    Institutions where the student can apply right now.

    Only units that are active, not past an auto-closing deadline and whose
    requirements the student's academic record satisfies are listed.
    """
    return get_explore_service().eligible_institutions(student)


@router.get("/institutions/{institution_id}/units", response_model=ExploreInstitution)
async def institution_units(institution_id: int, student: AuthenticatedCaller = Depends(get_current_student)):
    """Every active unit of one institution with `eligible` and `is_open` flags."""
    return get_explore_service().institution_units(student, institution_id)
