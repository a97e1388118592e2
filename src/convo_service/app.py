from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from convo_service.api.middleware.correlation_id import CorrelationIdMiddleware
from convo_service.api.middleware.metrics import RequestTimingMiddleware
from convo_service.api.v1.routers import (
    admin,
    conversations,
    health,
    messages,
    notifications,
    ws,
)
from convo_service.api.v1.schemas.common import ErrorItem, ErrorResponse
from convo_service.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from convo_service.config import settings
from convo_service.infrastructure.bus.redis_pubsub import RedisBroker, RedisPubSubSubscriber
from convo_service.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    local = ConnectionManager()
    subscriber: RedisPubSubSubscriber | None = None

    if settings.BROKER_BACKEND == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        logger.info("Redis connection pool created")
        app.state.broker = RedisBroker(app.state.redis, settings.REDIS_PUBSUB_CHANNEL, local)
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            local.publish,
        )
        await subscriber.start()
    else:
        app.state.broker = local
    logger.info("Broker backend: %s", settings.BROKER_BACKEND)

    yield

    if subscriber is not None:
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Conversation Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(notifications.router)
    app.include_router(admin.router)
    app.include_router(ws.router)

    return app


def _error(status_code: int, message: str, errors: list[ErrorItem] | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, errors=errors or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc.detail)

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return _error(403, exc.detail)

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.detail, [ErrorItem(**e) for e in exc.errors])

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_req: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            ErrorItem(
                path=".".join(str(p) for p in err.get("loc", ()) if p != "body"),
                message=err.get("msg", "Invalid value"),
            )
            for err in exc.errors()
        ]
        return _error(400, "Validation error", errors)

    @app.exception_handler(HTTPException)
    async def _http(_req: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))
