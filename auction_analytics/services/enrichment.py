from datetime import timedelta
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional, Sequence

from auction_analytics.services.anonymizer import (
    OWN_DISPLAY_NAME,
    anonymize_name,
    avatar_url,
    fallback_display_name,
)
from auction_analytics.services.domain import AutoBid, Bid, EnrichedBid, UserProfile


def auto_bid_user_ids(auto_bids: Iterable[AutoBid]) -> set[str]:
    """Users holding a standing order on the auction(s) the auto-bids came from."""
    return {auto_bid.user_id for auto_bid in auto_bids}


def resolve_display_name(
    user_id: str,
    profiles: Mapping[str, Optional[UserProfile]],
    anonymize: bool = True,
) -> str:
    profile = profiles.get(user_id)
    if profile is not None and profile.display_name.strip():
        name = profile.display_name
    else:
        name = fallback_display_name(user_id)
    return anonymize_name(name) if anonymize else name


def enrich_bids(
    bids: Sequence[Bid],
    auto_bids: Iterable[AutoBid],
    profiles: Mapping[str, Optional[UserProfile]],
    *,
    anonymize: bool = True,
    viewer_id: Optional[str] = None,
    previous: Optional[Bid] = None,
    position_offset: int = 0,
    avatar_for: Callable[[str], str] = avatar_url,
) -> list[EnrichedBid]:
    """
    Attach position, deltas, display identity and auto-bid flags to bids.

    Args:
        bids: Bids in ascending (timestamp, id) order
        auto_bids: Standing orders of the same auction
        profiles: Resolved user profiles; missing or None entries use the
            "User <last 6 chars>" fallback
        anonymize: Mask display names for public view
        viewer_id: Bids of this user are shown as "You" and never masked
        previous: Bid preceding bids[0], when continuing a page; deltas of the
            first bid are measured against it
        position_offset: Number of bids before bids[0] in the auction
        avatar_for: Maps a user id to its avatar reference

    Returns:
        One EnrichedBid per input bid, same order

    The auto-bid flag is per user: every bid of a user holding any standing
    order on the auction is flagged, including bids they placed by hand.
    """
    auto_users = auto_bid_user_ids(auto_bids)
    enriched: list[EnrichedBid] = []
    prev = previous

    for index, bid in enumerate(bids):
        time_since_previous = timedelta(0)
        price_change = Decimal(0)
        price_change_percent = 0.0
        if prev is not None:
            time_since_previous = bid.timestamp - prev.timestamp
            price_change = bid.amount - prev.amount
            if prev.amount > 0:
                price_change_percent = float(price_change / prev.amount * 100)

        if viewer_id is not None and bid.user_id == viewer_id:
            display_name = OWN_DISPLAY_NAME
        else:
            display_name = resolve_display_name(bid.user_id, profiles, anonymize)

        enriched.append(
            EnrichedBid(
                id=bid.id,
                auction_id=bid.auction_id,
                user_id=bid.user_id,
                amount=bid.amount,
                timestamp=bid.timestamp,
                display_name=display_name,
                avatar_ref=avatar_for(bid.user_id),
                is_auto_bid=bid.user_id in auto_users,
                position=position_offset + index + 1,
                time_since_previous=time_since_previous,
                price_change=price_change,
                price_change_percent=price_change_percent,
            )
        )
        prev = bid

    return enriched
