"""
API v1 router configuration.
"""
from fastapi import APIRouter
from .users import router as users_router

# Create main v1 router
router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(users_router)
