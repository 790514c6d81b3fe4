from decimal import Decimal
from typing import Sequence

from auction_analytics.services.domain import BidHistoryStats, EnrichedBid, PriceTrend

DEFAULT_STATS_TREND_THRESHOLD = 5.0

# Bid frequency never divides by less than one hour. Bids clustered inside
# the first hour therefore report "bids in that hour", not a true rate.
MIN_TIME_RANGE_HOURS = 1.0


def empty_stats() -> BidHistoryStats:
    return BidHistoryStats()


def price_trend(
    first_amount: Decimal, last_amount: Decimal, threshold_percent: float
) -> PriceTrend:
    """Classify the first-to-last price move against a +/- percent threshold."""
    if first_amount == 0:
        return PriceTrend.STABLE
    change_percent = float((last_amount - first_amount) / first_amount * 100)
    if change_percent > threshold_percent:
        return PriceTrend.UP
    if change_percent < -threshold_percent:
        return PriceTrend.DOWN
    return PriceTrend.STABLE


def calculate_bid_stats(
    bids: Sequence[EnrichedBid],
    trend_threshold: float = DEFAULT_STATS_TREND_THRESHOLD,
) -> BidHistoryStats:
    """
    Summary statistics over bids in ascending timestamp order.

    Empty input returns the all-zero stats with a stable trend. The trend
    threshold here (default 5%) is separate from the trend
    report's (default 10%).
    """
    if not bids:
        return empty_stats()

    amounts = [bid.amount for bid in bids]
    total_bids = len(bids)
    total_bidders = len({bid.user_id for bid in bids})
    total_value = sum(amounts, Decimal(0))

    span_hours = (bids[-1].timestamp - bids[0].timestamp).total_seconds() / 3600
    time_range_hours = max(MIN_TIME_RANGE_HOURS, span_hours)

    trend = PriceTrend.STABLE
    if total_bids > 1:
        trend = price_trend(amounts[0], amounts[-1], trend_threshold)

    return BidHistoryStats(
        total_bids=total_bids,
        total_bidders=total_bidders,
        highest_bid=max(amounts),
        lowest_bid=min(amounts),
        average_bid=total_value / total_bids,
        total_value=total_value,
        bid_frequency=total_bids / time_range_hours,
        competition_index=total_bidders / total_bids,
        price_trend=trend,
    )
