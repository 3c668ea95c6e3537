from __future__ import annotations

import logging

import jwt

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import ForbiddenError, UnauthenticatedError
from messaging_service.application.ports.auth import TokenVerifier, UserStatusChecker

logger = logging.getLogger(__name__)


class AuthenticationGate:
    """Admit a credential only if it verifies and its user is not banned."""

    def __init__(self, verifier: TokenVerifier, user_status: UserStatusChecker) -> None:
        self._verifier = verifier
        self._user_status = user_status

    async def authenticate(self, credential: str | None) -> Principal:
        if not credential:
            raise UnauthenticatedError("Authentication required")
        try:
            principal = await self._verifier.verify(credential)
        except jwt.ExpiredSignatureError as exc:
            raise UnauthenticatedError("Token expired") from exc
        except (jwt.PyJWTError, ValueError) as exc:
            logger.debug("Credential rejected", exc_info=True)
            raise UnauthenticatedError("Invalid or expired token") from exc

        if not await self._user_status.is_user_active(principal.user_id):
            raise ForbiddenError("Your account has been suspended")
        return principal
