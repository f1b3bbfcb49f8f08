"""ARQ (Async Redis Queue) connection settings.

Workers read ``REDIS_URL`` (``redis://`` or ``rediss://`` for TLS) and run
their cron schedule off that connection.
"""

from urllib.parse import urlparse

from arq.connections import RedisSettings
from libs.common.config import get_settings


def get_redis_settings() -> RedisSettings:
    """Build ARQ ``RedisSettings`` from ``REDIS_URL``."""
    parsed = urlparse(get_settings().REDIS_URL)
    database = parsed.path.lstrip("/")

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(database) if database.isdigit() else 0,
        username=parsed.username or None,
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
        conn_timeout=5,
        conn_retries=5,
        conn_retry_delay=2,
    )
