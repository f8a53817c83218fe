"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from uniform.api.routes.auth_routes import router as auth_router
from uniform.api.routes.student_routes import router as student_router
from uniform.api.routes.explore_routes import router as explore_router
from uniform.api.routes.application_routes import router as application_router
from uniform.api.routes.unit_routes import router as unit_router
from uniform.api.routes.system_routes import router as system_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(explore_router)
api_router.include_router(application_router)
api_router.include_router(unit_router)
api_router.include_router(system_router)
