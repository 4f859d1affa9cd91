from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class GeneratedMessageResponse(BaseModel):
    """Response from follow-up generation. The message is already saved."""
    client_id: int
    message: str
    message_id: int
    sent_at: datetime
    tokens_used: Optional[int] = None
    provider: Optional[str] = None


class ClientStatsResponse(BaseModel):
    total: int
    need_follow_up: int
    with_debts: int
    without_debts: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str  # "healthy", "degraded", "unhealthy"
    version: str
    provider: str  # "openai", "gemini"
    model: str
    fallback_provider: Optional[str] = None
    fallback_count: int = 0
    model_available: bool = True
    fallback_available: bool = False
    database_available: bool = True
    uptime_seconds: Optional[float] = None
