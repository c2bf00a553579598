"""create token_prices

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "token_prices",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("currency", sa.String(length=20), nullable=False),
        sa.Column("price", sa.Numeric(24, 10), nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_token_prices_currency", "token_prices", ["currency"], unique=True)
    op.create_index("ix_token_prices_updated_at", "token_prices", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_token_prices_updated_at", table_name="token_prices")
    op.drop_index("ix_token_prices_currency", table_name="token_prices")
    op.drop_table("token_prices")
