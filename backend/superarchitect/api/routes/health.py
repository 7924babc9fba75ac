"""Health check endpoint.

Always returns 200 so load balancers keep routing. The generator is reported
but never called from here.
"""

from __future__ import annotations

from fastapi import APIRouter

from superarchitect.config import settings

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


@router.get("/health")
async def health_check() -> dict:
    """Confirm the API process is alive."""
    return {
        "status": "ok",
        "version": VERSION,
        "environment": settings.environment,
        "generator": "mock" if settings.use_mock_generator else "gemini",
        "gemini_configured": bool(settings.google_ai_api_key),
    }
