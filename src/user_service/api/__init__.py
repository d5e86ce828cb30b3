"""
API router configuration.
"""
from fastapi import APIRouter
from ..core.config import settings
from .v1 import router as v1_router

# Create main API router
router = APIRouter(prefix=settings.API_PREFIX)

# Include version routers
router.include_router(v1_router)
