"""API routers."""

from fastapi import APIRouter

from dwdedupe.api.routers import auth, health, jobs, pages

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(pages.router)
api_router.include_router(jobs.router)

__all__ = ["api_router"]
