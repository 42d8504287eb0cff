"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import health, password_reset

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    password_reset.router, prefix="/password-reset", tags=["password-reset"]
)
