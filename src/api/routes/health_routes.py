"""
Health check route - public, no authentication required.
"""
from fastapi import APIRouter

router = APIRouter()


@router.get(
    "",
    summary="System health check",
)
async def health_check():
    """
    Check system health status.

    Reports whether the sync configuration is complete.
    No authentication required.
    """
    health = {
        "status": "healthy",
        "service": "Sheet Order Sync API",
        "version": "1.0.0",
        "components": {}
    }

    import config

    try:
        config.validate_config()
        health["components"]["config"] = "ok"
    except ValueError as e:
        health["components"]["config"] = f"error: {str(e)}"
        health["status"] = "degraded"

    health["components"]["sync_trigger"] = "enabled" if config.SYNC_SECRET else "disabled"

    return health
