"""
Liveness endpoint.
"""

from fastapi import APIRouter, Request

from services.personalization.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    app_settings = getattr(request.app.state, "settings", settings)
    return {
        "status": "ok",
        "service": app_settings.app_name,
        "version": app_settings.app_version,
        "requestId": request.state.request_id,
    }
