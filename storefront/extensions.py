import logging
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import redis as _redis
from rq import Queue

logger = logging.getLogger(__name__)

db = SQLAlchemy()
migrate = Migrate()

# Initialized lazily in create_app
redis_client: _redis.Redis = None  # type: ignore
task_queue: Queue = None  # type: ignore


class InlineQueue:
    """Runs jobs synchronously when Redis is not available (dev/tests)."""

    def enqueue(self, func, *args, **kwargs):
        logger.debug("Redis not available, running %s inline", func.__name__)
        return func(*args, **kwargs)


def init_redis(app):
    global redis_client, task_queue
    redis_url = app.config.get("REDIS_URL", "")
    if not redis_url:
        logger.warning("REDIS_URL not set, activity jobs run inline (dev mode)")
        task_queue = InlineQueue()
        return

    try:
        redis_client = _redis.from_url(redis_url, decode_responses=False)
        redis_client.ping()
        task_queue = Queue("activity-log", connection=redis_client)
    except Exception as e:
        logger.warning("Redis connection failed (%s), activity jobs run inline", e)
        task_queue = InlineQueue()
