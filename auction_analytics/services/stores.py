"""
Read-only collaborators of the bid history engine.

The Protocols describe what the engine needs; the Sql* classes implement
them on the PostgreSQL schema. Every call opens its own short session so
calls for distinct keys can run concurrently.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auction_analytics.core.exceptions import BidStoreUnavailableError
from auction_analytics.models.auction import Auction as AuctionRow
from auction_analytics.models.auction import AutoBid as AutoBidRow
from auction_analytics.models.auction import Bid as BidRow
from auction_analytics.models.user import User as UserRow
from auction_analytics.services.domain import AutoBid, Bid, UserProfile

logger = logging.getLogger(__name__)


class BidStore(Protocol):
    async def fetch_bids(
        self,
        auction_id: str,
        limit: int,
        after: Optional[Bid] = None,
    ) -> list[Bid]:
        """Bids of one auction in ascending (timestamp, id) order, strictly after `after`."""
        ...

    async def fetch_user_bids(self, auction_id: str, user_id: str, limit: int) -> list[Bid]:
        """One user's bids on one auction, newest first."""
        ...

    async def get_bid(self, auction_id: str, bid_id: str) -> Optional[Bid]: ...

    async def last_bid_before(self, auction_id: str, timestamp: datetime) -> Optional[Bid]:
        """The latest bid, by (timestamp, id), placed strictly before `timestamp`."""
        ...

    async def count_bids_before(self, auction_id: str, timestamp: datetime) -> int: ...

    async def list_auction_ids(self, limit: int) -> list[str]:
        """Auction ids, most recently created first."""
        ...


class AutoBidLookup(Protocol):
    async def fetch_auto_bids(
        self, auction_id: str, user_id: Optional[str] = None
    ) -> list[AutoBid]: ...


class UserDirectory(Protocol):
    async def resolve_user(self, user_id: str) -> Optional[UserProfile]: ...


def _as_utc(value: datetime) -> datetime:
    # Ensure timestamps are timezone-aware UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_bid(row: BidRow) -> Bid:
    return Bid(
        id=row.id,
        auction_id=row.auction_id,
        user_id=row.user_id,
        amount=row.amount,
        timestamp=_as_utc(row.timestamp),
    )


def _to_auto_bid(row: AutoBidRow) -> AutoBid:
    return AutoBid(
        id=row.id,
        auction_id=row.auction_id,
        user_id=row.user_id,
        max_amount=row.max_amount,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class SqlBidStore:
    """Bid store backed by the `bids` and `auctions` tables"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _scalars(self, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Bid store query failed: {e}")
            raise BidStoreUnavailableError("Bid store is unavailable") from e

    async def fetch_bids(
        self,
        auction_id: str,
        limit: int,
        after: Optional[Bid] = None,
    ) -> list[Bid]:
        stmt = select(BidRow).where(BidRow.auction_id == auction_id)
        if after is not None:
            stmt = stmt.where(
                or_(
                    BidRow.timestamp > after.timestamp,
                    and_(BidRow.timestamp == after.timestamp, BidRow.id > after.id),
                )
            )
        stmt = stmt.order_by(BidRow.timestamp.asc(), BidRow.id.asc()).limit(limit)
        return [_to_bid(row) for row in await self._scalars(stmt)]

    async def fetch_user_bids(self, auction_id: str, user_id: str, limit: int) -> list[Bid]:
        stmt = (
            select(BidRow)
            .where(BidRow.auction_id == auction_id, BidRow.user_id == user_id)
            .order_by(BidRow.timestamp.desc(), BidRow.id.desc())
            .limit(limit)
        )
        return [_to_bid(row) for row in await self._scalars(stmt)]

    async def get_bid(self, auction_id: str, bid_id: str) -> Optional[Bid]:
        stmt = select(BidRow).where(BidRow.auction_id == auction_id, BidRow.id == bid_id)
        rows = await self._scalars(stmt)
        return _to_bid(rows[0]) if rows else None

    async def last_bid_before(self, auction_id: str, timestamp: datetime) -> Optional[Bid]:
        stmt = (
            select(BidRow)
            .where(BidRow.auction_id == auction_id, BidRow.timestamp < timestamp)
            .order_by(BidRow.timestamp.desc(), BidRow.id.desc())
            .limit(1)
        )
        rows = await self._scalars(stmt)
        return _to_bid(rows[0]) if rows else None

    async def count_bids_before(self, auction_id: str, timestamp: datetime) -> int:
        stmt = select(func.count(BidRow.id)).where(
            BidRow.auction_id == auction_id, BidRow.timestamp < timestamp
        )
        rows = await self._scalars(stmt)
        return int(rows[0]) if rows else 0

    async def list_auction_ids(self, limit: int) -> list[str]:
        stmt = select(AuctionRow.id).order_by(AuctionRow.created_at.desc()).limit(limit)
        return [str(auction_id) for auction_id in await self._scalars(stmt)]


class SqlAutoBidLookup:
    """Standing orders from the `auto_bids` table, highest ceiling first"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_auto_bids(
        self, auction_id: str, user_id: Optional[str] = None
    ) -> list[AutoBid]:
        stmt = select(AutoBidRow).where(AutoBidRow.auction_id == auction_id)
        if user_id is not None:
            stmt = stmt.where(AutoBidRow.user_id == user_id)
        stmt = stmt.order_by(AutoBidRow.max_amount.desc())

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Auto-bid lookup failed for auction {auction_id}: {e}")
            raise BidStoreUnavailableError("Auto-bid lookup is unavailable") from e

        return [_to_auto_bid(row) for row in rows]


class SqlUserDirectory:
    """User profiles from the `users` table"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def resolve_user(self, user_id: str) -> Optional[UserProfile]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserRow.id, UserRow.name, UserRow.display_name).where(
                    UserRow.id == user_id
                )
            )
            row = result.first()

        if row is None:
            return None

        name = row.name or row.display_name
        if not name:
            return None
        return UserProfile(id=str(row.id), display_name=name)


class CachedUserDirectory:
    """
    Read-through Redis cache in front of another user directory.

    Only raw profiles are cached, never derived bid data. Redis errors are
    logged and the lookup falls through to the wrapped directory.
    """

    def __init__(self, inner: UserDirectory, redis: Redis, ttl_seconds: int = 3600):
        self._inner = inner
        self._redis = redis
        self._ttl = ttl_seconds

    @staticmethod
    def cache_key(user_id: str) -> str:
        return f"user:profile:{user_id}"

    async def resolve_user(self, user_id: str) -> Optional[UserProfile]:
        cache_key = self.cache_key(user_id)

        try:
            cached = await self._redis.hgetall(cache_key)
        except RedisError as e:
            logger.warning(f"Redis read failed for {cache_key}: {e}")
            cached = None

        if cached and cached.get("display_name"):
            return UserProfile(id=user_id, display_name=cached["display_name"])

        profile = await self._inner.resolve_user(user_id)
        if profile is None:
            return None

        try:
            pipe = self._redis.pipeline()
            pipe.hset(cache_key, mapping={"display_name": profile.display_name})
            pipe.expire(cache_key, self._ttl)
            await pipe.execute()
        except RedisError as e:
            logger.warning(f"Redis write failed for {cache_key}: {e}")

        return profile
