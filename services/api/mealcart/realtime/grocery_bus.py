import logging

from redis.exceptions import RedisError

from mealcart.infra.redis_client import get_redis, get_sync_redis
from mealcart.schemas import GroceryChangeEvent

logger = logging.getLogger("mealcart.realtime")


def channel_for_user(user_id: str) -> str:
    return f"mealcart:grocery:{user_id}"


def publish_change_sync(event: GroceryChangeEvent):
    r = get_sync_redis()
    r.publish(channel_for_user(event.user_id), event.model_dump_json())


def notify_change(event: GroceryChangeEvent):
    """Publish a committed list change; a dead channel never fails the write."""
    try:
        publish_change_sync(event)
    except RedisError as e:
        logger.warning(f"Failed to publish grocery {event.type} for {event.user_id}: {e}")


async def subscribe_user(user_id: str):
    r = await get_redis()
    pubsub = r.pubsub()
    await pubsub.subscribe(channel_for_user(user_id))
    return pubsub
