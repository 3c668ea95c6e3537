from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from messaging_service.api.deps import build_verifier
from messaging_service.api.middleware.correlation_id import CorrelationIdMiddleware
from messaging_service.api.middleware.metrics import RequestTimingMiddleware
from messaging_service.api.v1.routers import health, messages, notifications, ws
from messaging_service.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    ResourceExhaustedError,
    UnauthenticatedError,
    ValidationError,
)
from messaging_service.application.ports.auth import TokenVerifier, UserStatusChecker
from messaging_service.application.uow import UoWFactory
from messaging_service.config import settings
from messaging_service.infrastructure.auth.redis_user_status import RedisUserStatusChecker
from messaging_service.infrastructure.db.session import dispose_engine
from messaging_service.infrastructure.db.uow import open_uow
from messaging_service.infrastructure.ws.registry import ConnectionRegistry
from messaging_service.log_config import configure_logging
from messaging_service.services.auth_gate import AuthenticationGate
from messaging_service.services.conversation_store import ConversationStore
from messaging_service.services.delivery_router import DeliveryRouter
from messaging_service.services.notification_fanout import NotificationFanout
from messaging_service.workers.qa_events_consumer import QaEventHandler, build_consumer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    consumer = None
    if isinstance(app.state.user_status, RedisUserStatusChecker):
        handler = QaEventHandler(app.state.fanout, app.state.registry, app.state.user_status)
        consumer = build_consumer(app.state.redis, handler)
        await consumer.start()

    yield

    if consumer is not None:
        await consumer.stop()
    await app.state.fanout.aclose()
    await app.state.router.aclose()
    await app.state.redis.aclose()
    await dispose_engine()
    logger.info("Messaging service stopped")


def create_app(
    *,
    uow_factory: UoWFactory | None = None,
    verifier: TokenVerifier | None = None,
    user_status: UserStatusChecker | None = None,
) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="SmartSolve Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Connections are only opened on first use.
    app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    _wire_components(
        app,
        uow_factory=uow_factory or open_uow,
        verifier=verifier or build_verifier(),
        user_status=user_status
        or RedisUserStatusChecker(app.state.redis, settings.BANNED_USERS_KEY),
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
    app.include_router(messages.router)
    app.include_router(notifications.router)
    app.include_router(ws.router)

    return app


def _wire_components(
    app: FastAPI,
    *,
    uow_factory: UoWFactory,
    verifier: TokenVerifier,
    user_status: UserStatusChecker,
) -> None:
    """One registry per process, shared by the REST and WebSocket paths."""
    registry = ConnectionRegistry(
        shards=settings.REGISTRY_SHARDS,
        max_connections=settings.REGISTRY_MAX_CONNECTIONS,
        max_per_user=settings.REGISTRY_MAX_CONNECTIONS_PER_USER,
    )
    router = DeliveryRouter(registry, timeout=settings.DELIVERY_TIMEOUT_SECONDS)

    app.state.registry = registry
    app.state.router = router
    app.state.store = ConversationStore(uow_factory, max_length=settings.MESSAGE_MAX_LENGTH)
    app.state.fanout = NotificationFanout(
        router, uow_factory, concurrency=settings.FANOUT_CONCURRENCY,
    )
    app.state.user_status = user_status
    app.state.gate = AuthenticationGate(verifier, user_status)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnauthenticatedError)
    async def _unauthenticated(_req: Request, exc: UnauthenticatedError) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(ResourceExhaustedError)
    async def _exhausted(_req: Request, exc: ResourceExhaustedError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})
