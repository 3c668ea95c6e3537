"""FastAPI dependency injection helpers.

Long-lived collaborators are created once in ``create_app`` and kept on
``app.state``; these helpers hand them to route functions.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from messaging_service.application.dto.principal import Principal
from messaging_service.application.policies.permissions import assert_admin
from messaging_service.application.ports.auth import TokenVerifier
from messaging_service.config import settings
from messaging_service.infrastructure.auth.hs256_verifier import HS256Verifier
from messaging_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from messaging_service.infrastructure.ws.registry import ConnectionRegistry
from messaging_service.services.auth_gate import AuthenticationGate
from messaging_service.services.conversation_store import ConversationStore
from messaging_service.services.delivery_router import DeliveryRouter
from messaging_service.services.notification_fanout import NotificationFanout

_bearer_scheme = HTTPBearer(auto_error=False)


def build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        if not settings.JWKS_URL:
            raise RuntimeError("JWKS_URL must be set when JWT_VERIFY_MODE=jwks")
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_store(request: Request) -> ConversationStore:
    return request.app.state.store


def get_router(request: Request) -> DeliveryRouter:
    return request.app.state.router


def get_fanout(request: Request) -> NotificationFanout:
    return request.app.state.fanout


def get_gate(request: Request) -> AuthenticationGate:
    return request.app.state.gate


RegistryDep = Annotated[ConnectionRegistry, Depends(get_registry)]
StoreDep = Annotated[ConversationStore, Depends(get_store)]
RouterDep = Annotated[DeliveryRouter, Depends(get_router)]
FanoutDep = Annotated[NotificationFanout, Depends(get_fanout)]
GateDep = Annotated[AuthenticationGate, Depends(get_gate)]


async def get_current_principal(
    gate: GateDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    # Gate errors map to 401/403 through the app's exception handlers.
    return await gate.authenticate(credentials.credentials if credentials else None)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_current_admin(principal: CurrentPrincipal) -> Principal:
    assert_admin(principal)
    return principal


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]
