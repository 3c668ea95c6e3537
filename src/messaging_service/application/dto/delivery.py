from __future__ import annotations

from dataclasses import dataclass

from messaging_service.domain.entities.message import Message
from messaging_service.domain.value_objects.enums import DeliveryStatus


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of one bounded push attempt to a user's live connections."""

    status: DeliveryStatus
    delivered: int = 0
    abandoned: int = 0

    @classmethod
    def from_counts(cls, delivered: int, abandoned: int) -> DeliveryOutcome:
        status = DeliveryStatus.DELIVERED if delivered else DeliveryStatus.UNDELIVERED
        return cls(status=status, delivered=delivered, abandoned=abandoned)


UNDELIVERED = DeliveryOutcome(status=DeliveryStatus.UNDELIVERED)


@dataclass(frozen=True, slots=True)
class SentMessage:
    message: Message
    delivery: DeliveryOutcome
