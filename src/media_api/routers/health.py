from fastapi import APIRouter, Depends, Request

from media_api.config.settings import Settings
from media_api.dependencies import get_app_settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_app_settings)):
    """Report which bucket and deployment mode this instance serves, and whether its services are wired."""
    state = request.app.state

    components = {
        "storage": type(state.storage).__name__ if getattr(state, "storage", None) else None,
        "upload_service": getattr(state, "upload_service", None) is not None,
        "listing_service": getattr(state, "listing_service", None) is not None,
    }
    ready = all(components.values())

    return {
        "status": "ok" if ready else "degraded",
        "service": settings.app_name,
        "deployment_mode": settings.deployment_mode,
        "bucket": settings.s3_bucket_name,
        "components": components,
        "ready": ready,
    }
