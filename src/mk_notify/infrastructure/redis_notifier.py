"""Redis Pub/Sub notifier.

Each user has a channel f"{NOTIFY_CHANNEL_PREFIX}:{user_id}"; the realtime
gateway subscribes and pushes to connected clients. PUBLISH to a channel
nobody listens on is not an error.
"""

import logging

from config.settings import settings
from src.mk_common.redis_client import get_redis
from src.mk_notify.domain.events import NotificationEvent

logger = logging.getLogger(__name__)


def channel_for(user_id: str) -> str:
    return f"{settings.NOTIFY_CHANNEL_PREFIX}:{user_id}"


class RedisNotifier:
    async def publish(self, user_id: str, event: NotificationEvent) -> None:
        redis = await get_redis()
        receivers = await redis.publish(channel_for(user_id), event.to_json())
        logger.debug(
            "Published %s to user=%s (%d subscribers)", event.event_type, user_id, receivers
        )
