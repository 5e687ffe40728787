"""
API Routes Package.

Aggregates all API routers for inclusion in the main FastAPI application.
"""

from fastapi import APIRouter

from api.routes.health import router as health_router
from api.routes.resources import router as resources_router

# Create main API router with version prefix
api_router = APIRouter(prefix="/api/v1")

# Include all route modules
api_router.include_router(health_router)
api_router.include_router(resources_router)

# Export all routers for direct access if needed
__all__ = [
    "api_router",
    "health_router",
    "resources_router",
]
