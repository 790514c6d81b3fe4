"""
Cursor-based forward pagination over one auction's bids.

Pages are keyed on (timestamp, id) ascending. Reading every page from an
empty cursor until has_more is False yields each bid exactly once, as long
as the store is append-only. Bids back-dated before an already-served
cursor are not picked up.

Cursors are compact JWS tokens signed with SECRET_KEY, so the position they
carry cannot be edited by the client.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from jose import JWSError, jws

from auction_analytics.core.config import settings
from auction_analytics.core.exceptions import InvalidCursorError
from auction_analytics.services.domain import Bid, EnrichedBid, Page
from auction_analytics.services.stores import BidStore


@dataclass(frozen=True)
class CursorRef:
    """Decoded cursor: the last bid served and its position in the auction."""

    auction_id: str
    bid_id: str
    timestamp: datetime
    position: int


def encode_cursor(
    bid: EnrichedBid,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> str:
    payload = {
        "a": bid.auction_id,
        "i": bid.id,
        "t": bid.timestamp.isoformat(),
        "p": bid.position,
    }
    return jws.sign(
        payload,
        secret_key or settings.SECRET_KEY,
        algorithm=algorithm or settings.ALGORITHM,
    )


def decode_cursor(
    token: str,
    auction_id: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> CursorRef:
    """
    Decode a cursor issued for `auction_id`.

    Raises:
        InvalidCursorError: malformed or tampered token, or a token from
            another auction
    """
    try:
        raw = jws.verify(
            token,
            secret_key or settings.SECRET_KEY,
            algorithms=[algorithm or settings.ALGORITHM],
        )
        payload = json.loads(raw)
        ref = CursorRef(
            auction_id=str(payload["a"]),
            bid_id=str(payload["i"]),
            timestamp=datetime.fromisoformat(payload["t"]),
            position=int(payload["p"]),
        )
    except JWSError as e:
        raise InvalidCursorError("Pagination cursor failed verification") from e
    except (UnicodeError, ValueError, KeyError, TypeError) as e:
        raise InvalidCursorError("Malformed pagination cursor") from e

    if ref.auction_id != auction_id:
        raise InvalidCursorError("Cursor belongs to a different auction")
    if ref.position < 1:
        raise InvalidCursorError("Cursor position out of range")
    return ref


async def resolve_cursor(store: BidStore, ref: CursorRef) -> Bid:
    """
    Load the bid a cursor points at.

    A cursor whose bid was deleted, or whose timestamp no longer matches,
    is rejected rather than silently restarting or truncating the sequence.
    """
    bid = await store.get_bid(ref.auction_id, ref.bid_id)
    if bid is None:
        raise InvalidCursorError("Cursor refers to a bid that no longer exists")
    if bid.timestamp != ref.timestamp:
        raise InvalidCursorError("Cursor refers to a bid that has changed")
    return bid


def build_page(
    items: Sequence[EnrichedBid],
    page_size: int,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> Page:
    """A full page carries a cursor to its last item; a short page ends the sequence."""
    has_more = len(items) == page_size
    cursor = None
    if has_more and items:
        cursor = encode_cursor(items[-1], secret_key, algorithm)
    return Page(items=list(items), cursor=cursor, has_more=has_more)
