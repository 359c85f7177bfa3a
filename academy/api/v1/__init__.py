"""
API v1 Router
"""

from fastapi import APIRouter

from academy.api.v1 import auth, devices, users

router = APIRouter()

# Include all endpoint routers
router.include_router(auth.router)
router.include_router(devices.router)
router.include_router(users.router)

__all__ = ["router"]
