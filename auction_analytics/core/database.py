from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from auction_analytics.core.config import settings

# Read-only workload: every user profile lookup opens its own short session,
# so the pool has to cover USER_RESOLVE_CONCURRENCY per in-flight request.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_use_lifo=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=120,
    pool_timeout=10,
    pool_pre_ping=True,
    connect_args={
        "server_settings": {
            "timezone": "UTC",
            "application_name": "auction_bid_history",
        },
        "command_timeout": 30,
        "timeout": 15,
    },
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """All ORM models base class"""

    pass


async def init_db() -> None:
    """Initialize database, create all tables"""
    async with engine.begin() as conn:
        # Import all models to ensure they are registered
        from auction_analytics.models import Auction, AutoBid, Bid, User  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connection"""
    await engine.dispose()
