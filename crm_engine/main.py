"""
Automotora CRM Engine - FastAPI Application

Main entry point for the CRM service providing:
- Client records with conversation history and debts
- Follow-up classification
- LLM-drafted follow-up messages
- Assistant persona configuration
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from crm_engine.api.errors import (
    ConflictError,
    CRMBaseError,
    ErrorCode,
    ErrorResponse,
    StorageUnavailableError,
)
from crm_engine.api.middleware import RequestIDLogFilter, RequestIDMiddleware, get_request_id
from crm_engine.api.routes import assistant, clients, generate, health
from crm_engine.config.settings import settings
from crm_engine.storage.base import StorageError, StorageErrorKind
from crm_engine.storage.database import create_engine, create_session_factory, init_db
from crm_engine.storage.seed import seed_demo_data
from crm_engine.storage.sqlalchemy_store import SQLAlchemyClientStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(RequestIDLogFilter())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 60)
    logger.info("Starting Automotora CRM Engine")
    logger.info("=" * 60)
    logger.info(f"LLM provider: {settings.llm_provider} (fallback: {settings.llm_fallback_provider})")
    logger.info(f"Follow-up threshold: {settings.follow_up_days_without_message} days")
    logger.info(f"Port: {settings.api_port}")
    logger.info(f"Debug: {settings.debug}")

    engine = create_engine(settings.database_url)
    await init_db(engine)
    app.state.store = SQLAlchemyClientStore(create_session_factory(engine))
    if settings.seed_demo_data:
        await seed_demo_data(app.state.store)
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database connections closed")


# Create app
app = FastAPI(
    title="Automotora CRM Engine",
    description="Client follow-up classification and LLM-drafted messages for car dealerships",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiter shared by the decorated routes
app.state.limiter = generate.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Request ID middleware (must be added first to capture all requests)
app.add_middleware(RequestIDMiddleware)

# CORS middleware - configured via settings
cors_origins = settings.get_cors_origins()
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info(f"CORS enabled for origins: {cors_origins}")
else:
    logger.warning("CORS disabled - no origins configured and not in debug mode")


def _error_json(status_code: int, error_response: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
    )


# Global exception handlers for structured error responses
@app.exception_handler(CRMBaseError)
async def crm_error_handler(request: Request, exc: CRMBaseError) -> JSONResponse:
    """Handle all CRM engine exceptions with structured response."""
    return _error_json(
        exc.status_code,
        ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            details=exc.details,
            request_id=get_request_id(),
        ),
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Map storage failures that reach the boundary to API errors by kind."""
    details = {"resource": exc.resource} if exc.resource else None
    if exc.kind == StorageErrorKind.NOT_FOUND:
        error = CRMBaseError(exc.message, ErrorCode.NOT_FOUND, details=details, status_code=404)
    elif exc.kind == StorageErrorKind.CONFLICT:
        error = ConflictError(exc.message, details=details)
    else:
        logger.error(f"Storage error: {exc.message}")
        error = StorageUnavailableError()
    return await crm_error_handler(request, error)


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with structured response."""
    logger.exception(f"Unhandled exception: {exc}")
    return _error_json(
        500,
        ErrorResponse(
            error="An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"exception_type": type(exc).__name__} if settings.debug else None,
            request_id=get_request_id(),
        ),
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(clients.router, tags=["Clients"])
app.include_router(generate.router, tags=["Generation"])
app.include_router(assistant.router, tags=["Assistant"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "crm_engine.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug
    )
