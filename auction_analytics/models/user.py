from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from auction_analytics.core.database import Base

if TYPE_CHECKING:
    from auction_analytics.models.auction import AutoBid, Bid


class User(Base):
    """User ORM model (owned by the auth service, read-only here)"""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    # Profile names: `name` wins over `display_name` when both are set
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    bids: Mapped[list["Bid"]] = relationship("Bid", back_populates="user")
    auto_bids: Mapped[list["AutoBid"]] = relationship("AutoBid", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"
