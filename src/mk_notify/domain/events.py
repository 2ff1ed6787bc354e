"""Notification events and the Notifier contract.

The core only needs "publish event for user X". Delivery to connected
clients (websocket fan-out, toasts, email) is the transport's business.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Protocol

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    event_type: str                  # dotted name, e.g. "dispute.resolved"
    title: str
    message: str
    kind: str = NotificationType.INFO.value
    link: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)

    def to_json(self) -> str:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return json.dumps(data, ensure_ascii=False)


class NotifierProtocol(Protocol):
    async def publish(self, user_id: str, event: NotificationEvent) -> None: ...
