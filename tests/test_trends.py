"""
Tests for the trend/pattern analyzer
Covers:
- Flat report for fewer than two bids
- Overall trend at the 10% threshold
- Volatility and bidding intensity levels
- Bid wars, sniping, early and late bidding
"""

import pytest

from auction_analytics.core.config import Settings
from auction_analytics.services.domain import Level, PriceTrend, TrendReport
from auction_analytics.services.enrichment import enrich_bids
from auction_analytics.services.trends import TrendThresholds, analyze_trends
from fakes import make_bid


def enriched(*specs):
    """specs: (amount, seconds); every bid from a different user"""
    bids = [
        make_bid(f"b{i:03d}", f"u{i}", amount, seconds)
        for i, (amount, seconds) in enumerate(specs)
    ]
    return enrich_bids(bids, [], {})


class TestFlatReport:
    def test_no_bids(self):
        assert analyze_trends([]) == TrendReport()

    def test_single_bid(self):
        report = analyze_trends(enriched((200, 0)))
        assert report.overall_trend == PriceTrend.STABLE
        assert report.volatility == Level.LOW
        assert report.bidding_intensity == Level.LOW
        assert not report.has_bid_wars
        assert not report.has_sniping
        assert not report.has_early_bidding
        assert not report.has_late_bidding


class TestWorkedExample:
    def test_three_bids(self):
        """100 @ 0s, 150 @ 30s, 155 @ 45s"""
        report = analyze_trends(enriched((100, 0), (150, 30), (155, 45)))
        assert report.overall_trend == PriceTrend.UP
        # deltas 50 and 5: std dev 22.5
        assert report.volatility == Level.MEDIUM
        assert report.bidding_intensity == Level.HIGH
        assert report.has_bid_wars
        assert report.has_early_bidding
        assert report.has_late_bidding
        assert not report.has_sniping


class TestOverallTrend:
    @pytest.mark.parametrize(
        "last_amount, expected",
        [
            (111, PriceTrend.UP),
            (110, PriceTrend.STABLE),
            (106, PriceTrend.STABLE),
            (90, PriceTrend.STABLE),
            (89, PriceTrend.DOWN),
        ],
    )
    def test_ten_percent_threshold(self, last_amount, expected):
        report = analyze_trends(enriched((100, 0), (last_amount, 3600)))
        assert report.overall_trend == expected

    def test_zero_first_amount_is_stable(self):
        report = analyze_trends(enriched((0, 0), (100, 3600)))
        assert report.overall_trend == PriceTrend.STABLE


class TestVolatility:
    def test_high(self):
        report = analyze_trends(enriched((100, 0), (200, 3600), (100, 7200)))
        assert report.volatility == Level.HIGH

    def test_low_for_constant_increments(self):
        report = analyze_trends(enriched((100, 0), (110, 3600), (120, 7200), (130, 10800)))
        assert report.volatility == Level.LOW

    def test_thresholds_from_settings(self):
        thresholds = TrendThresholds.from_settings(
            Settings(VOLATILITY_MEDIUM_THRESHOLD=200.0, VOLATILITY_HIGH_THRESHOLD=500.0)
        )
        report = analyze_trends(enriched((100, 0), (200, 3600), (100, 7200)), thresholds)
        assert report.volatility == Level.LOW


class TestIntensity:
    @pytest.mark.parametrize(
        "gap_seconds, expected",
        [
            (120, Level.HIGH),
            (600, Level.MEDIUM),
            (3600, Level.LOW),
        ],
    )
    def test_mean_gap(self, gap_seconds, expected):
        report = analyze_trends(
            enriched((100, 0), (110, gap_seconds), (120, 2 * gap_seconds))
        )
        assert report.bidding_intensity == expected


class TestPatterns:
    def test_no_bid_war_when_gaps_are_long(self):
        report = analyze_trends(enriched((100, 0), (110, 60), (120, 180)))
        assert not report.has_bid_wars

    def test_bid_war_on_any_short_gap(self):
        report = analyze_trends(enriched((100, 0), (110, 3600), (120, 3659)))
        assert report.has_bid_wars

    def test_sniping(self):
        """4 of 6 bids land in the last 10% of the observed span"""
        report = analyze_trends(
            enriched((100, 0), (110, 100), (120, 950), (130, 960), (140, 980), (150, 1000))
        )
        assert report.has_sniping
        assert report.has_late_bidding

    def test_late_bids_below_share_are_not_sniping(self):
        specs = [(100 + i, i * 60) for i in range(17)]
        specs += [(200, 1000 * 60 + 10), (201, 1000 * 60 + 20), (202, 1000 * 60 + 30)]
        report = analyze_trends(enriched(*specs))
        assert report.has_late_bidding
        assert not report.has_sniping

    def test_two_late_bids_are_not_sniping(self):
        report = analyze_trends(enriched((100, 0), (110, 950), (120, 1000)))
        assert report.has_late_bidding
        assert not report.has_sniping

    def test_early_window_is_strictly_before_cutoff(self):
        report = analyze_trends(enriched((100, 0), (110, 500), (120, 1000)))
        assert report.has_early_bidding
