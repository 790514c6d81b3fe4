# Core modules
from auction_analytics.core.config import settings
from auction_analytics.core.database import AsyncSessionLocal, Base, close_db, init_db
from auction_analytics.core.redis import get_redis, redis_client

__all__ = [
    "settings",
    "init_db",
    "close_db",
    "Base",
    "AsyncSessionLocal",
    "redis_client",
    "get_redis",
]
