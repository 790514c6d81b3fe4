"""
SQLAlchemy ORM Models

All database models unified export point
"""

from auction_analytics.models.auction import Auction, AutoBid, Bid
from auction_analytics.models.user import User

__all__ = [
    "User",
    "Auction",
    "Bid",
    "AutoBid",
]
