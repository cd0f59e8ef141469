"""Redis connection used to publish company events over pub/sub.

A single client backed by a connection pool is created at app startup. The
ingestion path only publishes; it never subscribes or stores keys.
"""

import json
import logging
from typing import Any, Optional

import redis

from backend.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[redis.ConnectionPool] = None
_client: Optional[redis.Redis] = None


def init_redis_client() -> redis.Redis:
    """Create the pooled client. An unreachable server is only logged."""
    global _pool, _client
    _pool = redis.ConnectionPool(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        decode_responses=True,
        socket_connect_timeout=2,
        health_check_interval=30,
    )
    _client = redis.Redis(connection_pool=_pool)
    try:
        _client.ping()
        logger.info(f"Redis ready at {settings.redis_host}:{settings.redis_port}/{settings.redis_db}")
    except redis.RedisError as e:
        logger.warning(f"Redis at {settings.redis_host}:{settings.redis_port} not reachable yet: {e}")
    return _client


def get_redis_client() -> redis.Redis:
    if _client is None:
        raise RuntimeError("Redis client not initialized. Call init_redis_client() first.")
    return _client


def close_redis_client() -> None:
    global _pool, _client
    if _client is not None:
        _client.close()
    if _pool is not None:
        _pool.disconnect()
    _client = None
    _pool = None
    logger.info("Redis connection pool closed")


def publish_json(channel: str, message: dict[str, Any]) -> int:
    """Serialize a message to JSON and publish it. Returns the receiver count."""
    payload = json.dumps(message, default=str, separators=(",", ":"))
    receivers = get_redis_client().publish(channel, payload)
    logger.debug(f"Published {message.get('action', 'message')} on {channel} to {receivers} subscribers")
    return receivers


def check_connection() -> bool:
    """Check if Redis is reachable."""
    if _client is None:
        return False
    try:
        return bool(_client.ping())
    except redis.RedisError:
        return False
