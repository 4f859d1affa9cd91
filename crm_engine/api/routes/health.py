"""
Health check API endpoint.

GET /health - Check service health and configuration.
"""
import time
from fastapi import APIRouter, Depends

from crm_engine.api.dependencies import get_store
from crm_engine.api.models.responses import HealthResponse
from crm_engine.llm.factory import llm_client
from crm_engine.storage.base import ClientStore

router = APIRouter()

# Track service start time for uptime calculation
_start_time = time.time()

VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(store: ClientStore = Depends(get_store)) -> HealthResponse:
    """
    Health check endpoint with database and LLM provider info.

    Returns:
        - status: healthy/degraded/unhealthy
        - provider / model: primary LLM provider
        - model_available: whether primary LLM is responding
        - database_available: whether the database answers
        - uptime_seconds: API uptime
    """
    uptime = time.time() - _start_time

    database_available = await store.health_check()
    llm_health = await llm_client.health_check()
    primary_healthy = llm_health["primary"]["status"] == "healthy"
    fallback_status = llm_health["fallback"].get("status", "disabled")

    if not database_available:
        status = "unhealthy"
    elif primary_healthy:
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(
        status=status,
        version=VERSION,
        provider=llm_client.provider_name,
        model=llm_client.model_name,
        fallback_provider=llm_client.fallback_provider_name,
        fallback_count=llm_client.fallback_count,
        model_available=primary_healthy,
        fallback_available=fallback_status == "healthy",
        database_available=database_available,
        uptime_seconds=round(uptime, 2),
    )
