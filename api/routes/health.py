"""
Health check endpoints
"""
from datetime import datetime, timezone
from fastapi import APIRouter

from api.dependencies import EngineDep
from config.settings import settings

router = APIRouter()


@router.get("/")
async def root():
    """Simple health check endpoint"""
    return {
        "status": "online",
        "service": "Polymarket PnL API",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health")
async def health(engine: EngineDep):
    """Detailed health check with cache and throttle state"""
    throttle = engine.throttle
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "cache": engine.cache.get_info(),
        "fetch_throttle": {
            "batch_size": throttle.batch_size,
            "backoff_seconds": throttle.backoff,
            "rate_limited_total": throttle.rate_limited_total,
        },
    }
