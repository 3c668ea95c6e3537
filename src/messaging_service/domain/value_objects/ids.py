from __future__ import annotations

from typing import NewType

ConnectionId = NewType("ConnectionId", str)
ConversationKey = NewType("ConversationKey", str)
