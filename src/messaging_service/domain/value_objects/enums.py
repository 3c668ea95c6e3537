from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    STUDENT = "student"
    TUTOR = "tutor"
    ADMIN = "admin"


class NotificationType(StrEnum):
    NEW_QUESTION = "new_question"
    NEW_ANSWER = "new_answer"
    ANSWER_ACCEPTED = "answer_accepted"
    NEW_MESSAGE = "new_message"
    SYSTEM = "system"


class DeliveryStatus(StrEnum):
    DELIVERED = "delivered"
    UNDELIVERED = "undelivered"


class ConnectionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    REGISTERED = "registered"
    ROOM_JOINED = "room_joined"
    DISCONNECTED = "disconnected"
