from flask_sqlalchemy import SQLAlchemy
import redis
import logging

logger = logging.getLogger(__name__)

db = SQLAlchemy()

# Redis client
redis_client = None


def init_redis(app):
    """Initialize Redis connection, returns None when unreachable"""
    global redis_client
    try:
        redis_client = redis.Redis(
            host=app.config['REDIS_HOST'],
            port=app.config['REDIS_PORT'],
            db=app.config['REDIS_DB'],
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        # Test connection
        redis_client.ping()
        logger.info("Redis connected successfully")
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {e}")
        logger.warning("Falling back to the database store")
        redis_client = None
    return redis_client
