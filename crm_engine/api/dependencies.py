"""FastAPI dependencies wiring storage into the engine services."""

from fastapi import Depends, Request

from crm_engine.engine.assistant_config import AssistantConfigService
from crm_engine.engine.composer import FollowUpComposer
from crm_engine.engine.follow_up import FollowUpClassifier
from crm_engine.storage.base import ClientStore


def get_store(request: Request) -> ClientStore:
    """Store created by the application lifespan."""
    return request.app.state.store


def get_config_service(store: ClientStore = Depends(get_store)) -> AssistantConfigService:
    return AssistantConfigService(store)


def get_classifier(store: ClientStore = Depends(get_store)) -> FollowUpClassifier:
    return FollowUpClassifier(store)


def get_composer(store: ClientStore = Depends(get_store)) -> FollowUpComposer:
    return FollowUpComposer(store)
