"""Immutable value types shared by the bid history engine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional


class PriceTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class Level(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Bid:
    id: str
    auction_id: str
    user_id: str
    amount: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class AutoBid:
    id: str
    auction_id: str
    user_id: str
    max_amount: Decimal
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class UserProfile:
    id: str
    display_name: str


@dataclass(frozen=True)
class EnrichedBid:
    """A bid plus the derived display and delta metrics. Never persisted."""

    id: str
    auction_id: str
    user_id: str
    amount: Decimal
    timestamp: datetime
    display_name: str
    avatar_ref: str
    is_auto_bid: bool
    position: int
    time_since_previous: timedelta = timedelta(0)
    price_change: Decimal = Decimal(0)
    price_change_percent: float = 0.0


@dataclass(frozen=True)
class BidHistoryStats:
    total_bids: int = 0
    total_bidders: int = 0
    highest_bid: Decimal = Decimal(0)
    lowest_bid: Decimal = Decimal(0)
    average_bid: Decimal = Decimal(0)
    total_value: Decimal = Decimal(0)
    bid_frequency: float = 0.0
    competition_index: float = 0.0
    price_trend: PriceTrend = PriceTrend.STABLE


@dataclass(frozen=True)
class TrendReport:
    overall_trend: PriceTrend = PriceTrend.STABLE
    volatility: Level = Level.LOW
    bidding_intensity: Level = Level.LOW
    has_bid_wars: bool = False
    has_sniping: bool = False
    has_early_bidding: bool = False
    has_late_bidding: bool = False


@dataclass(frozen=True)
class Page:
    items: list[EnrichedBid] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False


@dataclass(frozen=True)
class BidHistoryResult:
    bids: list[EnrichedBid]
    stats: BidHistoryStats


@dataclass(frozen=True)
class PaginatedBidHistory:
    """One page of bids. `stats` covers only the bids on this page."""

    page: Page
    stats: BidHistoryStats


@dataclass(frozen=True)
class UserBidHistory:
    """
    A user's own bids across auctions, newest first.

    `truncated` is set when the scan stopped on its auction cap or time
    budget before collecting `limit` bids; the list is then best-effort.
    """

    bids: list[EnrichedBid]
    auctions_scanned: int
    truncated: bool
