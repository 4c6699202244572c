"""API v1 routes."""

from fastapi import APIRouter

from dynasty_auth.api.v1 import auth, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
