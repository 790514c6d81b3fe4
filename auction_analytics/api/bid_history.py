# api/bid_history.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis.asyncio import Redis

from auction_analytics.api.auth import get_current_user_id
from auction_analytics.core.config import settings
from auction_analytics.core.database import AsyncSessionLocal
from auction_analytics.core.exceptions import BidStoreUnavailableError, InvalidCursorError
from auction_analytics.core.redis import get_redis
from auction_analytics.schemas.bid_history import (
    BidHistoryResponse,
    BidHistoryStatsResponse,
    BidTrendsResponse,
    EnrichedBidResponse,
    PaginatedBidHistoryResponse,
    UserBidHistoryResponse,
)
from auction_analytics.services.bid_history_service import BidHistoryService

router = APIRouter()


async def get_bid_history_service(
    redis: Optional[Redis] = Depends(get_redis),
) -> BidHistoryService:
    """FastAPI Dependency: bid history service wired to PostgreSQL and Redis"""
    return BidHistoryService.from_sql(AsyncSessionLocal, redis)


def _store_unavailable(e: BidStoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"message": str(e), "retryable": e.retryable},
    )


@router.get("/auctions/{auction_id}/bids", response_model=BidHistoryResponse)
async def get_bid_history(
    auction_id: str,
    limit: int = Query(settings.DEFAULT_HISTORY_LIMIT, ge=1, le=settings.MAX_HISTORY_LIMIT),
    since: Optional[datetime] = Query(
        None, description="Only bids placed at or after this time (e.g. the last hour)"
    ),
    service: BidHistoryService = Depends(get_bid_history_service),
):
    """Anonymized bid history of an auction, oldest first, with stats"""
    try:
        result = await service.get_bid_history(auction_id, limit=limit, since=since)
    except BidStoreUnavailableError as e:
        raise _store_unavailable(e)

    return BidHistoryResponse(
        auction_id=auction_id,
        bids=[EnrichedBidResponse.from_domain(bid) for bid in result.bids],
        stats=BidHistoryStatsResponse.from_domain(result.stats),
    )


@router.get("/auctions/{auction_id}/bids/page", response_model=PaginatedBidHistoryResponse)
async def get_paginated_bid_history(
    auction_id: str,
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    cursor: Optional[str] = None,
    service: BidHistoryService = Depends(get_bid_history_service),
):
    """
    One page of bid history.

    Pass the returned cursor back to get the next page. Stats are computed
    over the returned page only.
    """
    try:
        result = await service.get_paginated_bid_history(
            auction_id, page_size=page_size, cursor=cursor
        )
    except InvalidCursorError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BidStoreUnavailableError as e:
        raise _store_unavailable(e)

    return PaginatedBidHistoryResponse(
        auction_id=auction_id,
        bids=[EnrichedBidResponse.from_domain(bid) for bid in result.page.items],
        stats=BidHistoryStatsResponse.from_domain(result.stats),
        cursor=result.page.cursor,
        has_more=result.page.has_more,
    )


@router.get("/auctions/{auction_id}/bids/trends", response_model=BidTrendsResponse)
async def get_bid_trends(
    auction_id: str,
    service: BidHistoryService = Depends(get_bid_history_service),
):
    """Trend and bidding pattern analysis for an auction"""
    try:
        report = await service.get_bid_trends(auction_id)
    except BidStoreUnavailableError as e:
        raise _store_unavailable(e)

    return BidTrendsResponse.from_domain(auction_id, report)


@router.get("/users/me/bids", response_model=UserBidHistoryResponse)
async def get_my_bid_history(
    limit: int = Query(settings.USER_HISTORY_DEFAULT_LIMIT, ge=1, le=settings.MAX_HISTORY_LIMIT),
    user_id: str = Depends(get_current_user_id),
    service: BidHistoryService = Depends(get_bid_history_service),
):
    """
    The caller's own bids across all auctions, newest first.

    Expensive, best-effort scan: check `truncated` before treating the list
    as complete.
    """
    try:
        history = await service.get_user_bid_history(user_id, limit=limit)
    except BidStoreUnavailableError as e:
        raise _store_unavailable(e)

    return UserBidHistoryResponse(
        user_id=user_id,
        bids=[EnrichedBidResponse.from_domain(bid) for bid in history.bids],
        auctions_scanned=history.auctions_scanned,
        truncated=history.truncated,
    )
