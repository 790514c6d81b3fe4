"""Add indexes for bid history reads

Revision ID: add_bid_history_indexes
Revises:
Create Date: 2026-10-18

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = 'add_bid_history_indexes'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Add indexes backing the bid history queries"""

    # Keyset pagination over one auction
    # Used in: SELECT ... WHERE auction_id = X AND (timestamp, id) > (T, I) ORDER BY timestamp, id
    op.create_index(
        'idx_bids_auction_timestamp_id',
        'bids',
        ['auction_id', 'timestamp', 'id'],
        unique=False
    )

    # Per-user filter inside the cross-auction scan
    # Used in: SELECT ... WHERE auction_id = X AND user_id = Y ORDER BY timestamp DESC
    op.create_index(
        'idx_bids_auction_user_timestamp',
        'bids',
        ['auction_id', 'user_id', 'timestamp'],
        unique=False
    )

    # Auto-bid lookup, optionally for one user
    op.create_index(
        'idx_auto_bids_auction_user',
        'auto_bids',
        ['auction_id', 'user_id'],
        unique=False
    )


def downgrade():
    """Remove bid history indexes"""
    op.drop_index('idx_auto_bids_auction_user', table_name='auto_bids')
    op.drop_index('idx_bids_auction_user_timestamp', table_name='bids')
    op.drop_index('idx_bids_auction_timestamp_id', table_name='bids')
