"""Canonical identifier for a pair of participants.

The key is the two user ids sorted lexicographically and joined with
``SEPARATOR``, so ``conversation_key("bob", "alice") == "alice_bob"``.
The same key doubles as the WebSocket room name for the pair. User ids may
not contain the separator, otherwise ``(a, b_c)`` and ``(a_b, c)`` would
share a key.
"""
from __future__ import annotations

from messaging_service.domain.value_objects.ids import ConversationKey

SEPARATOR = "_"


def is_valid_user_id(user_id: str) -> bool:
    return bool(user_id) and SEPARATOR not in user_id


def conversation_key(user_a: str, user_b: str) -> ConversationKey:
    first, second = sorted((str(user_a), str(user_b)))
    if not (is_valid_user_id(first) and is_valid_user_id(second)):
        raise ValueError(f"User ids must be non-empty and must not contain {SEPARATOR!r}")
    return ConversationKey(f"{first}{SEPARATOR}{second}")


def key_includes(key: str, user_id: str) -> bool:
    """True if ``key`` is the conversation key of ``user_id`` and someone."""
    first, sep, second = key.partition(SEPARATOR)
    if not sep or not (is_valid_user_id(first) and is_valid_user_id(second)):
        return False
    if first >= second:
        return False
    return str(user_id) in (first, second)
