"""Health check API routes.

Reports whether the flat-file store is configured. The store itself is not
contacted.
"""

from fastapi import APIRouter

from config.flatfile_config import PipelineSettings, StoreConfig

router = APIRouter(tags=["health"])


def _get_health_status() -> dict:
    """Internal health check logic."""
    config = StoreConfig.from_env()
    settings = PipelineSettings.from_env()
    if not config.has_credentials:
        return {
            "status": "degraded",
            "reason": "FLATFILES_S3_ACCESS_KEY / FLATFILES_S3_SECRET_KEY not set",
        }
    return {
        "status": "healthy",
        "endpoint": config.endpoint_url,
        "bucket": config.bucket,
        "destination_dir": str(settings.destination_dir),
    }


@router.get("/health")
async def health():
    return _get_health_status()


@router.get("/health/live")
async def health_live():
    """Liveness probe: the process is up."""
    return {"status": "ok"}
