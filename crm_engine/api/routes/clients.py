"""
Client API endpoints.

GET  /clients                  - All clients (id, name, national_id) by name
GET  /clients/stats            - Totals for the dashboard
GET  /clients/{id}             - Client with messages (newest first) and debts
POST /clients                  - Create a client with initial messages and debts
POST /clients/{id}/messages    - Append a message
GET  /clients-to-do-follow-up  - Clients that need outreach
"""

import logging
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Path, status

from crm_engine.api.dependencies import get_classifier, get_store
from crm_engine.api.errors import ClientNotFoundError, ConflictError, ErrorResponse
from crm_engine.api.models.requests import CreateClientRequest, CreateMessageRequest
from crm_engine.api.models.responses import ClientStatsResponse
from crm_engine.engine.follow_up import FollowUpClassifier
from crm_engine.storage.base import ClientStore, StorageError, StorageErrorKind
from crm_engine.storage.records import BasicClient, ClientRecord, MessageRecord

logger = logging.getLogger(__name__)
router = APIRouter()

NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "Client not found"}}


@router.get("/clients", response_model=List[BasicClient])
async def list_clients(store: ClientStore = Depends(get_store)) -> List[BasicClient]:
    return await store.list_clients()


@router.get("/clients/stats", response_model=ClientStatsResponse)
async def client_stats(
    store: ClientStore = Depends(get_store),
    classifier: FollowUpClassifier = Depends(get_classifier),
) -> ClientStatsResponse:
    total = await store.count_clients()
    with_debts = await store.count_clients_with_debts()
    need_follow_up = await classifier.get_clients_needing_follow_up()
    return ClientStatsResponse(
        total=total,
        need_follow_up=len(need_follow_up),
        with_debts=with_debts,
        without_debts=total - with_debts,
    )


@router.get("/clients/{client_id}", response_model=ClientRecord, responses=NOT_FOUND_RESPONSE)
async def get_client(
    client_id: int = Path(..., gt=0),
    store: ClientStore = Depends(get_store),
) -> ClientRecord:
    client = await store.get_client(client_id)
    if client is None:
        raise ClientNotFoundError(client_id)
    return client


@router.post(
    "/clients",
    response_model=ClientRecord,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "National id already registered"}},
)
async def create_client(
    request: CreateClientRequest,
    store: ClientStore = Depends(get_store),
) -> ClientRecord:
    logger.info(
        f"Creating client with {len(request.messages)} messages and {len(request.debts)} debts"
    )
    try:
        return await store.create_client(request.to_new_client())
    except StorageError as e:
        if e.kind != StorageErrorKind.CONFLICT:
            raise
        raise ConflictError(
            f"A client with national id {request.national_id} already exists",
            details={"national_id": request.national_id},
        ) from e


@router.post(
    "/clients/{client_id}/messages",
    response_model=MessageRecord,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND_RESPONSE,
)
async def create_message(
    request: CreateMessageRequest,
    client_id: int = Path(..., gt=0),
    store: ClientStore = Depends(get_store),
) -> MessageRecord:
    message = request.to_new_message()
    sent_at = message.sent_at or datetime.now(timezone.utc)
    return await store.append_message(client_id, message.text, message.role, sent_at)


@router.get("/clients-to-do-follow-up", response_model=List[BasicClient])
async def clients_to_follow_up(
    classifier: FollowUpClassifier = Depends(get_classifier),
) -> List[BasicClient]:
    """Clients with no messages, or whose last message is older than the follow-up threshold."""
    return await classifier.get_clients_needing_follow_up()
