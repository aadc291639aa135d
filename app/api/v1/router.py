"""API v1 router - aggregates all endpoint routers."""

from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.scripts import router as scripts_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(scripts_router)


@api_router.get("/")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Script Hosting API",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/api/v1/auth",
            "scripts": "/api/v1/scripts",
        },
    }
