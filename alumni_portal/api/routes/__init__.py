"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from alumni_portal.api.routes.auth_routes import router as auth_router
from alumni_portal.api.routes.alumni_routes import router as alumni_router
from alumni_portal.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(alumni_router)
api_router.include_router(admin_router)
