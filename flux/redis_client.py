import logging

import redis

from flux.config import settings

logger = logging.getLogger(__name__)

# only the rate limiter and readiness probe talk to redis
redis_client = redis.Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=1,
    socket_timeout=1,
)

def redis_ping() -> bool:
    try:
        return bool(redis_client.ping())
    except redis.RedisError as e:
        logger.warning("redis ping failed: %s", e)
        return False
