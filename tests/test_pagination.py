"""
Tests for cursor pagination
Covers:
- Cursor encoding and validation
- Page shape (cursor only on full pages)
- Invalid-cursor policy (tampered, foreign, deleted or changed bids)
- Round trip over random append-only bid streams
"""

import asyncio
import base64
import json
import random
from dataclasses import replace
from datetime import timedelta

import pytest

from auction_analytics.core.config import Settings
from auction_analytics.core.exceptions import InvalidCursorError
from auction_analytics.services.bid_history_service import BidHistoryService
from auction_analytics.services.enrichment import enrich_bids
from auction_analytics.services.pagination import (
    build_page,
    decode_cursor,
    encode_cursor,
    resolve_cursor,
)
from fakes import (
    InMemoryAutoBidLookup,
    InMemoryBidStore,
    InMemoryUserDirectory,
    make_bid,
)


def make_service(store, **overrides):
    return BidHistoryService(
        bid_store=store,
        auto_bid_lookup=InMemoryAutoBidLookup(),
        user_directory=InMemoryUserDirectory(),
        config=Settings(**overrides),
    )


def read_all_pages(service, auction_id, page_size):
    """Follow cursors from None until has_more is False."""
    pages = []
    cursor = None
    while True:
        result = asyncio.run(
            service.get_paginated_bid_history(auction_id, page_size=page_size, cursor=cursor)
        )
        pages.append(result)
        if not result.page.has_more:
            return pages
        cursor = result.page.cursor


class TestCursor:
    def test_round_trips_through_token(self):
        bid = enrich_bids([make_bid("b7", "u1", 100, seconds=12.5)], [], {}, position_offset=6)[0]
        ref = decode_cursor(encode_cursor(bid), "auction-1")
        assert ref.bid_id == "b7"
        assert ref.timestamp == bid.timestamp
        assert ref.position == 7

    def test_token_is_url_safe(self):
        bid = enrich_bids([make_bid("b/+?", "u1", 100)], [], {})[0]
        token = encode_cursor(bid)
        assert all(char.isalnum() or char in "-_." for char in token)

    @pytest.mark.parametrize("token", ["not-a-cursor", "", "e30", "W10", "!!!!"])
    def test_malformed_token_rejected(self, token):
        with pytest.raises(InvalidCursorError):
            decode_cursor(token, "auction-1")

    def test_cursor_from_other_auction_rejected(self):
        bid = enrich_bids([make_bid("b1", "u1", 100, auction_id="auction-2")], [], {})[0]
        with pytest.raises(InvalidCursorError):
            decode_cursor(encode_cursor(bid), "auction-1")

    def test_cursor_to_deleted_bid_rejected(self):
        bids = [make_bid("b1", "u1", 100), make_bid("b2", "u2", 110, seconds=5)]
        store = InMemoryBidStore(bids)
        token = encode_cursor(enrich_bids(bids, [], {})[0])
        store.delete("b1")

        ref = decode_cursor(token, "auction-1")
        with pytest.raises(InvalidCursorError):
            asyncio.run(resolve_cursor(store, ref))

    def test_cursor_to_rewritten_bid_rejected(self):
        bids = [make_bid("b1", "u1", 100), make_bid("b2", "u2", 110, seconds=5)]
        store = InMemoryBidStore(bids)
        token = encode_cursor(enrich_bids(bids, [], {})[0])
        store.bids[0] = replace(bids[0], timestamp=bids[0].timestamp + timedelta(seconds=30))

        ref = decode_cursor(token, "auction-1")
        with pytest.raises(InvalidCursorError):
            asyncio.run(resolve_cursor(store, ref))

    def test_edited_position_rejected(self):
        bid = enrich_bids([make_bid("b2", "u1", 100)], [], {}, position_offset=1)[0]
        header, payload, signature = encode_cursor(bid).split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["p"] = 999
        forged_payload = (
            base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
        )

        with pytest.raises(InvalidCursorError):
            decode_cursor(f"{header}.{forged_payload}.{signature}", "auction-1")

    def test_cursor_signed_with_other_key_rejected(self):
        bid = enrich_bids([make_bid("b1", "u1", 100)], [], {})[0]
        token = encode_cursor(bid, secret_key="some-other-secret")
        with pytest.raises(InvalidCursorError):
            decode_cursor(token, "auction-1")


class TestBuildPage:
    def test_full_page_has_cursor(self):
        items = enrich_bids([make_bid("b1", "u1", 100), make_bid("b2", "u2", 110, 5)], [], {})
        page = build_page(items, page_size=2)
        assert page.has_more
        assert decode_cursor(page.cursor, "auction-1").bid_id == "b2"

    def test_short_page_has_no_cursor(self):
        items = enrich_bids([make_bid("b1", "u1", 100)], [], {})
        page = build_page(items, page_size=2)
        assert not page.has_more
        assert page.cursor is None


class TestPaginatedHistory:
    def test_pages_continue_positions_and_deltas(self):
        bids = [make_bid(f"b{i}", f"u{i}", 100 + 10 * i, seconds=60 * i) for i in range(5)]
        service = make_service(InMemoryBidStore(bids))

        pages = read_all_pages(service, "auction-1", page_size=2)
        assert [len(page.page.items) for page in pages] == [2, 2, 1]

        second_page_first = pages[1].page.items[0]
        assert second_page_first.position == 3
        assert second_page_first.price_change == 10
        assert second_page_first.time_since_previous == timedelta(seconds=60)

    def test_stats_cover_only_the_page(self):
        bids = [make_bid(f"b{i}", f"u{i}", 100 + 10 * i, seconds=60 * i) for i in range(5)]
        service = make_service(InMemoryBidStore(bids))

        pages = read_all_pages(service, "auction-1", page_size=2)
        assert pages[0].stats.total_bids == 2
        assert pages[1].stats.lowest_bid == 120
        assert pages[2].stats.total_bids == 1

    def test_exact_multiple_ends_with_empty_page(self):
        bids = [make_bid(f"b{i}", "u1", 100 + i, seconds=i) for i in range(4)]
        pages = read_all_pages(make_service(InMemoryBidStore(bids)), "auction-1", page_size=2)
        assert [len(page.page.items) for page in pages] == [2, 2, 0]
        assert pages[-1].page.cursor is None
        assert pages[-1].stats.total_bids == 0

    def test_invalid_cursor_raises(self):
        service = make_service(InMemoryBidStore([make_bid("b1", "u1", 100)]))
        with pytest.raises(InvalidCursorError):
            asyncio.run(service.get_paginated_bid_history("auction-1", page_size=1, cursor="garbage"))

    def test_edited_cursor_position_rejected_by_service(self):
        bids = [make_bid(f"b{i}", "u1", 100 + i, seconds=i) for i in range(4)]
        service = make_service(InMemoryBidStore(bids))
        first = asyncio.run(service.get_paginated_bid_history("auction-1", page_size=2))

        header, payload, signature = first.page.cursor.split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["p"] = 999
        forged_payload = (
            base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
        )

        with pytest.raises(InvalidCursorError):
            asyncio.run(
                service.get_paginated_bid_history(
                    "auction-1", page_size=2, cursor=f"{header}.{forged_payload}.{signature}"
                )
            )

    def test_cursor_from_service_with_other_secret_rejected(self):
        bids = [make_bid(f"b{i}", "u1", 100 + i, seconds=i) for i in range(4)]
        store = InMemoryBidStore(bids)
        other = make_service(store, SECRET_KEY="another-deployment-secret")
        first = asyncio.run(other.get_paginated_bid_history("auction-1", page_size=2))

        with pytest.raises(InvalidCursorError):
            asyncio.run(
                make_service(store).get_paginated_bid_history(
                    "auction-1", page_size=2, cursor=first.page.cursor
                )
            )

    @pytest.mark.parametrize("page_size", [0, -1, 101])
    def test_page_size_out_of_range(self, page_size):
        service = make_service(InMemoryBidStore())
        with pytest.raises(ValueError):
            asyncio.run(service.get_paginated_bid_history("auction-1", page_size=page_size))

    def test_new_bids_appended_after_cursor_are_picked_up(self):
        bids = [make_bid(f"b{i}", "u1", 100 + i, seconds=i) for i in range(3)]
        store = InMemoryBidStore(bids)
        service = make_service(store)

        first = asyncio.run(service.get_paginated_bid_history("auction-1", page_size=3))
        store.bids.append(make_bid("b3", "u2", 200, seconds=10))
        second = asyncio.run(
            service.get_paginated_bid_history("auction-1", page_size=3, cursor=first.page.cursor)
        )
        assert [bid.id for bid in second.page.items] == ["b3"]
        assert second.page.items[0].position == 4


def test_round_trip_over_random_append_only_streams():
    """Property: concatenated pages reproduce the full stream, in order, exactly once"""
    rng = random.Random(2024)
    for _ in range(30):
        count = rng.randint(0, 60)
        seconds = 0.0
        bids = []
        for i in range(count):
            # Ties on timestamp are allowed; the id breaks them
            seconds += rng.choice([0, 0, 1, 5, 30, 600])
            bids.append(make_bid(f"b{i:04d}", f"u{rng.randint(1, 6)}", 100 + i, seconds=seconds))
        rng.shuffle(bids)
        store = InMemoryBidStore(bids)
        page_size = rng.randint(1, 10)

        pages = read_all_pages(make_service(store), "auction-1", page_size)
        served = [bid for page in pages for bid in page.page.items]

        expected = sorted(bids, key=lambda bid: (bid.timestamp, bid.id))
        assert [bid.id for bid in served] == [bid.id for bid in expected]
        assert [bid.position for bid in served] == list(range(1, count + 1))
        assert all(page.page.has_more for page in pages[:-1])
        assert not pages[-1].page.has_more
