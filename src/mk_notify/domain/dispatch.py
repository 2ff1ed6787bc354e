"""Best-effort fan-out of notifications after a financial transaction commits.

A failed or slow publish is logged and dropped; it never reaches the caller,
so it can never roll back or block a balance-affecting mutation.
"""

import asyncio
import logging
from collections.abc import Iterable

from src.mk_notify.domain.events import NotificationEvent, NotifierProtocol

logger = logging.getLogger(__name__)

_PUBLISH_TIMEOUT_SECONDS = 2.0


async def publish_best_effort(
    notifier: NotifierProtocol,
    deliveries: Iterable[tuple[str, NotificationEvent]],
) -> int:
    """Publish each (user_id, event) pair. Returns how many were delivered."""
    delivered = 0
    for user_id, event in deliveries:
        try:
            await asyncio.wait_for(
                notifier.publish(user_id, event), timeout=_PUBLISH_TIMEOUT_SECONDS
            )
        except Exception:
            logger.warning(
                "Notification dropped: user=%s event=%s", user_id, event.event_type,
                exc_info=True,
            )
            continue
        delivered += 1
    return delivered
