"""add_subscription_period_index

Revision ID: 0002
Revises: 0001
Create Date: 2025-07-08 09:30:00.000000

"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Index the month range used by period listings."""
    op.create_index("ix_subscriptions_period", "subscriptions", ["start_date", "end_date"])


def downgrade() -> None:
    op.drop_index("ix_subscriptions_period", table_name="subscriptions")
