from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from auction_analytics.core.database import Base

if TYPE_CHECKING:
    from auction_analytics.models.user import User


class Auction(Base):
    """Auction ORM model. Only the id and creation time matter to bid history."""

    __tablename__ = "auctions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    bids: Mapped[list["Bid"]] = relationship("Bid", back_populates="auction")
    auto_bids: Mapped[list["AutoBid"]] = relationship(
        "AutoBid", back_populates="auction"
    )

    def __repr__(self) -> str:
        return f"<Auction(id={self.id})>"


class Bid(Base):
    """Bid ORM model. Rows are append-only; written by the bidding service."""

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    auction_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("auctions.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    auction: Mapped["Auction"] = relationship("Auction", back_populates="bids")
    user: Mapped["User"] = relationship("User", back_populates="bids")

    def __repr__(self) -> str:
        return f"<Bid(id={self.id}, auction_id={self.auction_id}, amount={self.amount})>"


class AutoBid(Base):
    """AutoBid ORM model: a user's standing maximum-bid order on an auction"""

    __tablename__ = "auto_bids"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    auction_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("auctions.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )

    max_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    auction: Mapped["Auction"] = relationship("Auction", back_populates="auto_bids")
    user: Mapped["User"] = relationship("User", back_populates="auto_bids")

    def __repr__(self) -> str:
        return f"<AutoBid(id={self.id}, auction_id={self.auction_id}, max_amount={self.max_amount})>"
