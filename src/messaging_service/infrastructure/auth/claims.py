from __future__ import annotations

from typing import Any

import jwt

from messaging_service.application.dto.principal import Principal
from messaging_service.domain.value_objects.conversation_key import is_valid_user_id
from messaging_service.domain.value_objects.enums import UserRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a Principal from decoded JWT claims.

    Tokens issued by the Q&A API carry ``userId``; standard ``sub`` is
    accepted as well.
    """
    subject = payload.get("sub") or payload.get("userId")
    if not subject:
        raise jwt.InvalidTokenError("Token has no subject")
    if not is_valid_user_id(str(subject)):
        raise jwt.InvalidTokenError("Token subject is not a valid user id")
    role_raw = payload.get("role", UserRole.STUDENT)
    role = UserRole(role_raw) if role_raw in UserRole.__members__.values() else UserRole.STUDENT
    return Principal(user_id=str(subject), role=role)
