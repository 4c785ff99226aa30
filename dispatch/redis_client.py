"""
Shared Redis connection
Supports both a single REDIS_URL (managed Redis) and host/port settings
"""

import logging
from typing import Optional

import redis

from . import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def _mask_url(url: str) -> str:
    if "@" not in url:
        return "****"
    credentials, host = url.split("@", 1)
    protocol = credentials.split(":")[0]
    return f"{protocol}:****@{host}"


def get_redis_client() -> redis.Redis:
    """Get or create the process-wide Redis client"""
    global redis_client

    if redis_client is not None:
        return redis_client

    logger.info("🔄 Initializing Redis connection...")

    try:
        if config.REDIS_URL:
            logger.info(f"📡 Using Redis URL connection: {_mask_url(config.REDIS_URL)}")
            client = redis.from_url(
                config.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=15,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        else:
            logger.info(f"   Host: {config.REDIS_HOST}:{config.REDIS_PORT} (db {config.REDIS_DB})")
            client = redis.Redis(
                host=config.REDIS_HOST,
                port=config.REDIS_PORT,
                password=config.REDIS_PASSWORD,
                db=config.REDIS_DB,
                ssl=config.REDIS_SSL,
                decode_responses=True,
                socket_connect_timeout=15,
                retry_on_timeout=True,
                health_check_interval=30,
            )
        client.ping()
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {str(e)}")
        raise

    logger.info("Redis connected successfully")
    redis_client = client
    return redis_client
