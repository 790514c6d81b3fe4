"""
Tests for the stats aggregator
Covers:
- Empty-state contract
- Single-bid and three-bid examples
- One-hour floor on bid frequency
- Price trend at the 5% threshold
- Bounds property over random bid sets
"""

import random
from decimal import Decimal

import pytest

from auction_analytics.services.domain import BidHistoryStats, PriceTrend
from auction_analytics.services.enrichment import enrich_bids
from auction_analytics.services.stats import calculate_bid_stats, empty_stats
from fakes import make_bid


def enriched(*specs):
    """specs: (user_id, amount, seconds)"""
    bids = [
        make_bid(f"b{i:03d}", user_id, amount, seconds)
        for i, (user_id, amount, seconds) in enumerate(specs)
    ]
    return enrich_bids(bids, [], {})


class TestEmptyState:
    def test_empty_input_is_all_zero_and_stable(self):
        stats = calculate_bid_stats([])
        assert stats == BidHistoryStats()
        assert stats.total_bids == 0
        assert stats.total_bidders == 0
        assert stats.highest_bid == 0
        assert stats.lowest_bid == 0
        assert stats.average_bid == 0
        assert stats.total_value == 0
        assert stats.bid_frequency == 0
        assert stats.competition_index == 0
        assert stats.price_trend == PriceTrend.STABLE

    def test_empty_stats_helper(self):
        assert empty_stats() == calculate_bid_stats([])


class TestExamples:
    def test_single_bid(self):
        stats = calculate_bid_stats(enriched(("u1", 200, 0)))
        assert stats.total_bids == 1
        assert stats.total_bidders == 1
        assert stats.highest_bid == stats.lowest_bid == stats.average_bid == Decimal(200)
        assert stats.total_value == Decimal(200)
        assert stats.price_trend == PriceTrend.STABLE
        assert stats.competition_index == 1.0
        assert stats.bid_frequency == 1.0

    def test_three_distinct_bidders(self):
        stats = calculate_bid_stats(
            enriched(("u1", 100, 0), ("u2", 150, 30), ("u3", 155, 45))
        )
        assert stats.total_bids == 3
        assert stats.total_bidders == 3
        assert stats.highest_bid == Decimal(155)
        assert stats.lowest_bid == Decimal(100)
        assert stats.average_bid == Decimal(135)
        assert stats.total_value == Decimal(405)
        assert stats.competition_index == 1.0
        assert stats.price_trend == PriceTrend.UP

    def test_competition_index_with_repeat_bidders(self):
        stats = calculate_bid_stats(
            enriched(("u1", 100, 0), ("u2", 110, 60), ("u1", 120, 120), ("u2", 130, 180))
        )
        assert stats.total_bidders == 2
        assert stats.competition_index == 0.5


class TestBidFrequency:
    def test_bids_within_an_hour_use_one_hour_floor(self):
        stats = calculate_bid_stats(
            enriched(("u1", 100, 0), ("u2", 150, 30), ("u3", 155, 45))
        )
        assert stats.bid_frequency == pytest.approx(3.0)

    def test_rate_over_longer_span(self):
        stats = calculate_bid_stats(
            enriched(
                ("u1", 100, 0),
                ("u2", 101, 1800),
                ("u3", 102, 3600),
                ("u4", 103, 5400),
                ("u5", 104, 7200),
            )
        )
        assert stats.bid_frequency == pytest.approx(2.5)


class TestPriceTrend:
    @pytest.mark.parametrize(
        "last_amount, expected",
        [
            (106, PriceTrend.UP),
            (105, PriceTrend.STABLE),
            (95, PriceTrend.STABLE),
            (94, PriceTrend.DOWN),
        ],
    )
    def test_five_percent_threshold(self, last_amount, expected):
        stats = calculate_bid_stats(enriched(("u1", 100, 0), ("u2", last_amount, 60)))
        assert stats.price_trend == expected

    def test_custom_threshold(self):
        stats = calculate_bid_stats(
            enriched(("u1", 100, 0), ("u2", 108, 60)), trend_threshold=10.0
        )
        assert stats.price_trend == PriceTrend.STABLE

    def test_zero_first_amount_is_stable(self):
        stats = calculate_bid_stats(enriched(("u1", 0, 0), ("u2", 50, 60)))
        assert stats.price_trend == PriceTrend.STABLE
        assert stats.lowest_bid == 0


def test_bounds_hold_for_random_bid_sets():
    """Property: lowest <= every amount <= highest, and lowest <= average <= highest"""
    rng = random.Random(42)
    for _ in range(200):
        count = rng.randint(1, 40)
        seconds = sorted(rng.uniform(0, 86400) for _ in range(count))
        specs = [
            (f"u{rng.randint(1, 8)}", Decimal(rng.randint(1, 100000)) / 100, second)
            for second in seconds
        ]
        bids = enriched(*specs)
        stats = calculate_bid_stats(bids)

        for bid in bids:
            assert stats.lowest_bid <= bid.amount <= stats.highest_bid
        assert stats.lowest_bid <= stats.average_bid <= stats.highest_bid
        assert 0 < stats.competition_index <= 1
        assert stats.total_bids == count
