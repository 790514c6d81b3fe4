# schemas/bid_history.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from auction_analytics.services.domain import (
    BidHistoryStats,
    EnrichedBid,
    TrendReport,
)


class EnrichedBidResponse(BaseModel):
    """A single bid with display and delta metrics"""
    id: str = Field(..., description="Bid ID")
    auction_id: str = Field(..., description="Auction ID")
    user_id: str = Field(..., description="Bidder ID")
    amount: float = Field(..., description="Bid amount")
    timestamp: datetime = Field(..., description="When the bid was recorded (UTC)")
    display_name: str = Field(..., description="Masked bidder name, or 'You'")
    avatar_ref: str = Field(..., description="Avatar URL derived from the bidder ID")
    is_auto_bid: bool = Field(..., description="Bidder holds a standing auto-bid on this auction")
    position: int = Field(..., description="1-based position in the auction, oldest first")
    time_since_previous_ms: int = Field(..., description="Milliseconds since the previous bid")
    price_change: float = Field(..., description="Amount change from the previous bid")
    price_change_percent: float = Field(..., description="Percent change from the previous bid")

    @classmethod
    def from_domain(cls, bid: EnrichedBid) -> "EnrichedBidResponse":
        return cls(
            id=bid.id,
            auction_id=bid.auction_id,
            user_id=bid.user_id,
            amount=float(bid.amount),
            timestamp=bid.timestamp,
            display_name=bid.display_name,
            avatar_ref=bid.avatar_ref,
            is_auto_bid=bid.is_auto_bid,
            position=bid.position,
            time_since_previous_ms=int(bid.time_since_previous.total_seconds() * 1000),
            price_change=float(bid.price_change),
            price_change_percent=bid.price_change_percent,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": "bid_8f2c",
                "auction_id": "auction_42",
                "user_id": "u_91ab77",
                "amount": 150.0,
                "timestamp": "2024-12-02T10:00:30Z",
                "display_name": "Ale*******",
                "avatar_ref": "https://i.pravatar.cc/150?img=36",
                "is_auto_bid": False,
                "position": 2,
                "time_since_previous_ms": 30000,
                "price_change": 50.0,
                "price_change_percent": 50.0
            }
        }


class BidHistoryStatsResponse(BaseModel):
    """Summary statistics over a set of bids"""
    total_bids: int
    total_bidders: int
    highest_bid: float
    lowest_bid: float
    average_bid: float
    total_value: float
    bid_frequency: float = Field(..., description="Bids per hour, over at least one hour")
    competition_index: float = Field(..., description="Distinct bidders / total bids")
    price_trend: str = Field(..., description="up, down or stable (5% threshold)")

    @classmethod
    def from_domain(cls, stats: BidHistoryStats) -> "BidHistoryStatsResponse":
        return cls(
            total_bids=stats.total_bids,
            total_bidders=stats.total_bidders,
            highest_bid=float(stats.highest_bid),
            lowest_bid=float(stats.lowest_bid),
            average_bid=float(stats.average_bid),
            total_value=float(stats.total_value),
            bid_frequency=stats.bid_frequency,
            competition_index=stats.competition_index,
            price_trend=stats.price_trend.value,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "total_bids": 3,
                "total_bidders": 3,
                "highest_bid": 155.0,
                "lowest_bid": 100.0,
                "average_bid": 135.0,
                "total_value": 405.0,
                "bid_frequency": 3.0,
                "competition_index": 1.0,
                "price_trend": "up"
            }
        }


class BidHistoryResponse(BaseModel):
    """Response schema for an auction's bid history"""
    auction_id: str
    bids: List[EnrichedBidResponse]
    stats: BidHistoryStatsResponse


class PaginatedBidHistoryResponse(BaseModel):
    """One page of bid history. Stats cover this page only."""
    auction_id: str
    bids: List[EnrichedBidResponse]
    stats: BidHistoryStatsResponse
    cursor: Optional[str] = Field(None, description="Pass back to fetch the next page")
    has_more: bool


class UserBidHistoryResponse(BaseModel):
    """The caller's own bids across auctions, newest first"""
    user_id: str
    bids: List[EnrichedBidResponse]
    auctions_scanned: int
    truncated: bool = Field(
        ..., description="Scan hit its auction cap or time budget; list may be incomplete"
    )


class TrendAnalysis(BaseModel):
    overall_trend: str = Field(..., description="up, down or stable (10% threshold)")
    volatility: str
    bidding_intensity: str


class PatternAnalysis(BaseModel):
    has_bid_wars: bool
    has_sniping: bool
    has_early_bidding: bool
    has_late_bidding: bool


class BidTrendsResponse(BaseModel):
    """Trend and pattern analysis for an auction"""
    auction_id: str
    trend_analysis: TrendAnalysis
    pattern_analysis: PatternAnalysis

    @classmethod
    def from_domain(cls, auction_id: str, report: TrendReport) -> "BidTrendsResponse":
        return cls(
            auction_id=auction_id,
            trend_analysis=TrendAnalysis(
                overall_trend=report.overall_trend.value,
                volatility=report.volatility.value,
                bidding_intensity=report.bidding_intensity.value,
            ),
            pattern_analysis=PatternAnalysis(
                has_bid_wars=report.has_bid_wars,
                has_sniping=report.has_sniping,
                has_early_bidding=report.has_early_bidding,
                has_late_bidding=report.has_late_bidding,
            ),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "auction_id": "auction_42",
                "trend_analysis": {
                    "overall_trend": "up",
                    "volatility": "medium",
                    "bidding_intensity": "high"
                },
                "pattern_analysis": {
                    "has_bid_wars": True,
                    "has_sniping": False,
                    "has_early_bidding": True,
                    "has_late_bidding": True
                }
            }
        }
