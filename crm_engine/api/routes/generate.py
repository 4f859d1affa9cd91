"""
Follow-up generation API endpoint.

POST /clients/{id}/generate-message - Draft a follow-up with the LLM and save it.

Security:
- Rate limited: configurable via settings (each call hits the paid LLM API)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from crm_engine.api.dependencies import get_composer, get_config_service
from crm_engine.api.errors import ErrorResponse
from crm_engine.api.models.requests import GenerateMessageRequest
from crm_engine.api.models.responses import GeneratedMessageResponse
from crm_engine.config.settings import settings
from crm_engine.engine.assistant_config import AssistantConfigService
from crm_engine.engine.composer import FollowUpComposer

logger = logging.getLogger(__name__)
router = APIRouter()

# Rate limiter (registered on app.state.limiter in main.py)
limiter = Limiter(key_func=get_remote_address)


@router.post(
    "/clients/{client_id}/generate-message",
    response_model=GeneratedMessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Client not found"},
        429: {"description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Message generated but not saved"},
        502: {"model": ErrorResponse, "description": "LLM provider error or empty response"},
        503: {"model": ErrorResponse, "description": "LLM provider rate limited"},
        504: {"model": ErrorResponse, "description": "LLM request timed out"},
    },
)
@limiter.limit(settings.rate_limit_generate)
async def generate_message(
    request: Request,
    client_id: int = Path(..., gt=0),
    generate_request: Optional[GenerateMessageRequest] = Body(default=None),
    composer: FollowUpComposer = Depends(get_composer),
    config_service: AssistantConfigService = Depends(get_config_service),
) -> GeneratedMessageResponse:
    """
    Generate a personalized follow-up message for a client.

    Financing is only offered to clients without registered debts. The
    message is saved to the client's history before it is returned.
    """
    hint = generate_request.hint if generate_request else None
    logger.info(f"Generating follow-up for client: {client_id}")
    result = await composer.generate_for_client(client_id, config_service, hint=hint)
    return GeneratedMessageResponse(
        client_id=client_id,
        message=result.text,
        message_id=result.message.id,
        sent_at=result.message.sent_at,
        tokens_used=result.tokens_used,
        provider=result.provider,
    )
