"""
Admin API endpoints for FraudLens management.

Includes:
- Metrics and monitoring
- Scan cache inspection and flushing
"""

from fastapi import APIRouter, Depends, Request

from fraudlens.api.security import rate_limiter, verify_api_token
from fraudlens.utils.logging_config import metrics


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_api_token)],
)


@router.get("/metrics")
async def get_metrics():
    """Get current application metrics."""
    return metrics.get_stats()


@router.post("/metrics/reset")
async def reset_metrics():
    """Reset all metrics (use with caution)."""
    metrics.reset()
    return {"message": "Metrics reset"}


@router.get("/cache/stats")
async def get_cache_stats(request: Request):
    return request.app.state.orchestrator.cache.stats()


@router.delete("/cache")
async def clear_cache(request: Request):
    """Drop every cached scan result."""
    cache = request.app.state.orchestrator.cache
    removed = cache.size
    cache.clear()
    return {"message": "Cache cleared", "removed": removed}


@router.post("/rate-limit/reset")
async def reset_rate_limits():
    """Clear all per-client scan counters."""
    rate_limiter.reset()
    return {"message": "Rate limits reset"}
