"""
Assistant configuration API endpoints.

GET /assistant/config - Current configuration (default created on first read)
PUT /assistant/config - Partial update, omitted fields keep their value
"""

import logging

from fastapi import APIRouter, Depends

from crm_engine.api.dependencies import get_config_service
from crm_engine.api.errors import ErrorResponse
from crm_engine.api.models.requests import UpdateAssistantConfigRequest
from crm_engine.engine.assistant_config import AssistantConfigService
from crm_engine.storage.records import AssistantConfig

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/assistant/config", response_model=AssistantConfig)
async def get_assistant_config(
    config_service: AssistantConfigService = Depends(get_config_service),
) -> AssistantConfig:
    return await config_service.get_config()


@router.put(
    "/assistant/config",
    response_model=AssistantConfig,
    responses={400: {"model": ErrorResponse, "description": "Invalid configuration"}},
)
async def update_assistant_config(
    request: UpdateAssistantConfigRequest,
    config_service: AssistantConfigService = Depends(get_config_service),
) -> AssistantConfig:
    return await config_service.update_config(request.to_update())
