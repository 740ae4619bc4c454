import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


async def init_redis(redis_url: str) -> Optional[redis.Redis]:
    """Initialize Redis connection.

    Returns None when no URL is configured, and the cache layer then runs as
    a permanent miss. An unreachable server only logs a warning at startup;
    the client is kept so the cache recovers once Redis comes back.
    """
    if not redis_url:
        logger.info("REDIS_URL not set, response caching disabled")
        return None

    client = redis.from_url(redis_url, decode_responses=True)

    # Test connection
    try:
        await client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed, continuing without cache: {e}")
    return client


async def close_redis(client: Optional[redis.Redis]) -> None:
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as e:
        logger.warning(f"Error closing Redis connection: {e}")
