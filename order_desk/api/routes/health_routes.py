"""
Health check route - public, reports desk state.
"""
from fastapi import APIRouter, Request

from order_desk import __version__, config

router = APIRouter()


@router.get(
    "",
    summary="System health check",
)
async def health_check(request: Request):
    """
    Check system health status.

    Reports whether the desk is initialized, the history size, whether an
    extraction is running and whether the Gemini key is configured.
    """
    health = {
        "status": "healthy",
        "service": "COD Order Desk API",
        "version": __version__,
        "components": {},
    }

    desk = getattr(request.app.state, "desk", None)
    if desk is None:
        health["status"] = "degraded"
        health["components"]["desk"] = "not initialized"
    else:
        health["components"]["desk"] = "ok"
        health["components"]["history_batches"] = len(desk.history)
        health["components"]["processing"] = desk.is_processing
        health["components"]["current_batch"] = desk.current_batch.id if desk.current_batch else None

    health["components"]["gemini"] = "configured" if config.GOOGLE_API_KEY else "missing api key"

    return health
