"""Bid history operations: enriched history, pages, per-user history and trends."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auction_analytics.core.config import Settings, settings
from auction_analytics.services.anonymizer import OWN_DISPLAY_NAME, avatar_url
from auction_analytics.services.domain import (
    Bid,
    BidHistoryResult,
    EnrichedBid,
    PaginatedBidHistory,
    Page,
    TrendReport,
    UserBidHistory,
    UserProfile,
)
from auction_analytics.services.enrichment import enrich_bids
from auction_analytics.services.pagination import build_page, decode_cursor, resolve_cursor
from auction_analytics.services.stats import calculate_bid_stats, empty_stats
from auction_analytics.services.stores import (
    AutoBidLookup,
    BidStore,
    CachedUserDirectory,
    SqlAutoBidLookup,
    SqlBidStore,
    SqlUserDirectory,
    UserDirectory,
)
from auction_analytics.services.trends import TrendThresholds, analyze_trends

logger = logging.getLogger(__name__)


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently like asyncio.gather.

    When one fails, the others are cancelled and awaited before the error
    propagates, so no lookup outlives the request that started it.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class BidHistoryService:
    """
    Read-side bid history engine for auctions.

    Every result is recomputed from the stores on each call; nothing derived
    is cached.
    """

    def __init__(
        self,
        bid_store: BidStore,
        auto_bid_lookup: AutoBidLookup,
        user_directory: UserDirectory,
        config: Settings = settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.bid_store = bid_store
        self.auto_bid_lookup = auto_bid_lookup
        self.user_directory = user_directory
        self.config = config
        self._clock = clock
        self._avatar_for = partial(
            avatar_url,
            pool_size=config.AVATAR_POOL_SIZE,
            template=config.AVATAR_URL_TEMPLATE,
        )

    @classmethod
    def from_sql(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        redis: Optional[Redis] = None,
        config: Settings = settings,
    ) -> "BidHistoryService":
        """Wire the service to PostgreSQL, with the Redis profile cache when available."""
        user_directory: UserDirectory = SqlUserDirectory(session_factory)
        if redis is not None:
            user_directory = CachedUserDirectory(
                user_directory, redis, ttl_seconds=config.USER_CACHE_TTL_SECONDS
            )
        return cls(
            bid_store=SqlBidStore(session_factory),
            auto_bid_lookup=SqlAutoBidLookup(session_factory),
            user_directory=user_directory,
            config=config,
        )

    def _clamp_limit(self, limit: int, maximum: int) -> int:
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        return min(limit, maximum)

    async def _resolve_profiles(
        self, user_ids: Iterable[str]
    ) -> dict[str, Optional[UserProfile]]:
        """Resolve distinct user ids concurrently. A failed lookup degrades to None."""
        semaphore = asyncio.Semaphore(self.config.USER_RESOLVE_CONCURRENCY)

        async def resolve(user_id: str) -> tuple[str, Optional[UserProfile]]:
            async with semaphore:
                try:
                    return user_id, await self.user_directory.resolve_user(user_id)
                except Exception as e:
                    logger.warning(f"Failed to fetch user data for {user_id}: {e}")
                    return user_id, None

        results = await asyncio.gather(*(resolve(user_id) for user_id in set(user_ids)))
        return dict(results)

    async def _enrich(
        self,
        auction_id: str,
        bids: list[Bid],
        *,
        viewer_id: Optional[str] = None,
        previous: Optional[Bid] = None,
        position_offset: int = 0,
    ) -> list[EnrichedBid]:
        # Auto-bids and profiles are independent reads; fetch them together
        auto_bids, profiles = await gather_or_cancel(
            self.auto_bid_lookup.fetch_auto_bids(auction_id),
            self._resolve_profiles(bid.user_id for bid in bids),
        )
        return enrich_bids(
            bids,
            auto_bids,
            profiles,
            anonymize=True,
            viewer_id=viewer_id,
            previous=previous,
            position_offset=position_offset,
            avatar_for=self._avatar_for,
        )

    async def get_bid_history(
        self,
        auction_id: str,
        limit: Optional[int] = None,
        viewer_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> BidHistoryResult:
        """
        Oldest-first anonymized bid history of an auction with its stats.

        Bids placed by `viewer_id`, when given, are shown as "You". With
        `since`, only bids at or after that instant are returned and the
        stats cover that window; positions and deltas stay those of the
        whole auction. Naive datetimes are taken as UTC.
        """
        if limit is None:
            limit = self.config.DEFAULT_HISTORY_LIMIT
        limit = self._clamp_limit(limit, self.config.MAX_HISTORY_LIMIT)

        previous: Optional[Bid] = None
        position_offset = 0
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            previous, position_offset = await gather_or_cancel(
                self.bid_store.last_bid_before(auction_id, since),
                self.bid_store.count_bids_before(auction_id, since),
            )

        bids = await self.bid_store.fetch_bids(auction_id, limit=limit, after=previous)
        if not bids:
            return BidHistoryResult(bids=[], stats=empty_stats())

        enriched = await self._enrich(
            auction_id,
            bids,
            viewer_id=viewer_id,
            previous=previous,
            position_offset=position_offset,
        )
        stats = calculate_bid_stats(
            enriched, trend_threshold=self.config.STATS_TREND_THRESHOLD_PERCENT
        )
        return BidHistoryResult(bids=enriched, stats=stats)

    async def get_paginated_bid_history(
        self,
        auction_id: str,
        page_size: Optional[int] = None,
        cursor: Optional[str] = None,
        viewer_id: Optional[str] = None,
    ) -> PaginatedBidHistory:
        """
        One page of anonymized bid history.

        The returned stats cover only the bids on this page, not the whole
        auction. Positions and deltas continue across pages.

        Raises:
            InvalidCursorError: the cursor is malformed, belongs to another
                auction, or its bid no longer exists
        """
        if page_size is None:
            page_size = self.config.DEFAULT_PAGE_SIZE
        if not 1 <= page_size <= self.config.MAX_PAGE_SIZE:
            raise ValueError(
                f"page_size must be between 1 and {self.config.MAX_PAGE_SIZE}, got {page_size}"
            )

        previous: Optional[Bid] = None
        position_offset = 0
        if cursor:
            ref = decode_cursor(
                cursor, auction_id, self.config.SECRET_KEY, self.config.ALGORITHM
            )
            previous = await resolve_cursor(self.bid_store, ref)
            position_offset = ref.position

        bids = await self.bid_store.fetch_bids(auction_id, limit=page_size, after=previous)
        if not bids:
            return PaginatedBidHistory(page=Page(), stats=empty_stats())

        enriched = await self._enrich(
            auction_id,
            bids,
            viewer_id=viewer_id,
            previous=previous,
            position_offset=position_offset,
        )
        stats = calculate_bid_stats(
            enriched, trend_threshold=self.config.STATS_TREND_THRESHOLD_PERCENT
        )
        page = build_page(enriched, page_size, self.config.SECRET_KEY, self.config.ALGORITHM)
        return PaginatedBidHistory(page=page, stats=stats)

    async def get_user_bid_history(
        self, user_id: str, limit: Optional[int] = None
    ) -> UserBidHistory:
        """
        A user's own bids across auctions, newest first, not anonymized.

        There is no per-user bid index, so this scans auctions (newest first)
        and filters each by user. The scan stops at USER_HISTORY_MAX_AUCTIONS
        auctions or USER_HISTORY_TIME_BUDGET_SECONDS, whichever comes first;
        a result cut short that way is flagged `truncated`. Treat this as an
        expensive, best-effort query.

        Positions number the returned bids oldest = 1. Price and time deltas
        are zero since neighbours come from different auctions.
        """
        if limit is None:
            limit = self.config.USER_HISTORY_DEFAULT_LIMIT
        limit = self._clamp_limit(limit, self.config.MAX_HISTORY_LIMIT)
        max_auctions = self.config.USER_HISTORY_MAX_AUCTIONS
        deadline = self._clock() + self.config.USER_HISTORY_TIME_BUDGET_SECONDS

        # One extra id tells us whether the cap cut the scan short
        auction_ids = await self.bid_store.list_auction_ids(max_auctions + 1)
        more_auctions = len(auction_ids) > max_auctions
        auction_ids = auction_ids[:max_auctions]

        collected: list[tuple[Bid, bool]] = []
        scanned = 0
        out_of_time = False

        for auction_id in auction_ids:
            if len(collected) >= limit:
                break
            if self._clock() >= deadline:
                out_of_time = True
                break

            bids = await self.bid_store.fetch_user_bids(
                auction_id, user_id, limit - len(collected)
            )
            scanned += 1
            if not bids:
                continue

            # Most scanned auctions hold no bids of the user; skip their auto-bid lookup
            auto_bids = await self.auto_bid_lookup.fetch_auto_bids(auction_id, user_id=user_id)
            has_auto_bid = any(auto_bid.user_id == user_id for auto_bid in auto_bids)
            collected.extend((bid, has_auto_bid) for bid in bids)

        truncated = len(collected) < limit and (
            out_of_time or (more_auctions and scanned == len(auction_ids))
        )
        if truncated:
            logger.warning(
                f"User bid history scan for {user_id} stopped after {scanned} auctions "
                f"with {len(collected)}/{limit} bids"
            )

        collected.sort(key=lambda item: (item[0].timestamp, item[0].id), reverse=True)
        total = len(collected)
        avatar = self._avatar_for(user_id)

        bids = [
            EnrichedBid(
                id=bid.id,
                auction_id=bid.auction_id,
                user_id=bid.user_id,
                amount=bid.amount,
                timestamp=bid.timestamp,
                display_name=OWN_DISPLAY_NAME,
                avatar_ref=avatar,
                is_auto_bid=has_auto_bid,
                position=total - index,
            )
            for index, (bid, has_auto_bid) in enumerate(collected)
        ]
        return UserBidHistory(bids=bids, auctions_scanned=scanned, truncated=truncated)

    async def get_bid_trends(self, auction_id: str) -> TrendReport:
        """Trend and pattern report over the oldest TREND_SAMPLE_SIZE bids."""
        bids = await self.bid_store.fetch_bids(
            auction_id, limit=self.config.TREND_SAMPLE_SIZE
        )
        # Trends only read amounts and timestamps; no identity lookups needed
        enriched = enrich_bids(bids, [], {}, avatar_for=self._avatar_for)
        return analyze_trends(enriched, TrendThresholds.from_settings(self.config))
