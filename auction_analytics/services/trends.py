"""Trend classification and bidding pattern detection for one auction."""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence

from auction_analytics.services.domain import EnrichedBid, Level, TrendReport
from auction_analytics.services.stats import price_trend


@dataclass(frozen=True)
class TrendThresholds:
    """
    Tunable cut-offs for the trend report.

    Volatility thresholds are in the auction's stored currency unit and only
    hold for one currency scale.
    """

    trend_percent: float = 10.0
    volatility_medium: float = 20.0
    volatility_high: float = 50.0
    intensity_high: timedelta = timedelta(minutes=5)
    intensity_medium: timedelta = timedelta(minutes=30)
    bid_war_gap: timedelta = timedelta(seconds=60)
    window_fraction: float = 0.1
    sniping_min_bids: int = 2
    sniping_min_share: float = 0.3

    @classmethod
    def from_settings(cls, settings) -> "TrendThresholds":
        return cls(
            trend_percent=settings.TREND_THRESHOLD_PERCENT,
            volatility_medium=settings.VOLATILITY_MEDIUM_THRESHOLD,
            volatility_high=settings.VOLATILITY_HIGH_THRESHOLD,
        )


def _std_dev(values: Sequence[float]) -> float:
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def classify_volatility(std_dev: float, thresholds: TrendThresholds) -> Level:
    if std_dev > thresholds.volatility_high:
        return Level.HIGH
    if std_dev > thresholds.volatility_medium:
        return Level.MEDIUM
    return Level.LOW


def classify_intensity(mean_gap: timedelta, thresholds: TrendThresholds) -> Level:
    if mean_gap < thresholds.intensity_high:
        return Level.HIGH
    if mean_gap < thresholds.intensity_medium:
        return Level.MEDIUM
    return Level.LOW


def analyze_trends(
    bids: Sequence[EnrichedBid],
    thresholds: TrendThresholds = TrendThresholds(),
) -> TrendReport:
    """
    Build the trend report for bids in ascending timestamp order.

    Fewer than two bids yields the flat report (stable, low, low, no patterns).
    Early and late windows are the first and last 10% of the span between
    the first and last observed bid, not of the auction's scheduled duration.
    """
    if len(bids) < 2:
        return TrendReport()

    amounts = [bid.amount for bid in bids]
    deltas = [float(amounts[i] - amounts[i - 1]) for i in range(1, len(amounts))]
    gaps = [bids[i].timestamp - bids[i - 1].timestamp for i in range(1, len(bids))]
    mean_gap = sum(gaps, timedelta(0)) / len(gaps)

    first_time = bids[0].timestamp
    span = bids[-1].timestamp - first_time
    early_cutoff = first_time + span * thresholds.window_fraction
    late_cutoff = first_time + span * (1 - thresholds.window_fraction)

    early_count = sum(1 for bid in bids if bid.timestamp < early_cutoff)
    late_count = sum(1 for bid in bids if bid.timestamp > late_cutoff)

    return TrendReport(
        overall_trend=price_trend(amounts[0], amounts[-1], thresholds.trend_percent),
        volatility=classify_volatility(_std_dev(deltas), thresholds),
        bidding_intensity=classify_intensity(mean_gap, thresholds),
        has_bid_wars=any(gap < thresholds.bid_war_gap for gap in gaps),
        has_sniping=(
            late_count > thresholds.sniping_min_bids
            and late_count / len(bids) > thresholds.sniping_min_share
        ),
        has_early_bidding=early_count > 0,
        has_late_bidding=late_count > 0,
    )
