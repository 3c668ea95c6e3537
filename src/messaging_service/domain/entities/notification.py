from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: str
    type: str
    created_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    delivered: bool = False
    delivered_at: datetime | None = None
