"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from storefront.api import auth, health, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/v1/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/v1/user", tags=["user"])
