"""hotel stock requests

Revision ID: 8c4d2e7f1a6b
Revises: 5b1f0c2a9d3e
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c4d2e7f1a6b"
down_revision: Union[str, Sequence[str], None] = "5b1f0c2a9d3e"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
QTY = sa.Numeric(14, 3)

stock_request_status = sa.Enum(
    "pending", "partially_issued", "fulfilled", "rejected",
    name="stock_request_status",
)


def upgrade() -> None:
    op.create_table(
        "stock_requests",
        sa.Column("id", ID, primary_key=True),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("requested_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("request_date", sa.Date(), nullable=False),
        sa.Column("status", stock_request_status, nullable=False),
        sa.Column("remarks", sa.Text()),
        sa.Column("fulfilled_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_stock_requests_hotel_id", "stock_requests", ["hotel_id"])
    op.create_index("ix_stock_requests_status", "stock_requests", ["status"])

    op.create_table(
        "stock_request_lines",
        sa.Column("request_id", ID, sa.ForeignKey("stock_requests.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("requested_quantity", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("issued_quantity", QTY, nullable=False),
        sa.Column("status", stock_request_status, nullable=False),
        sa.CheckConstraint("requested_quantity > 0", name="ck_request_line_qty_pos"),
        sa.CheckConstraint("issued_quantity >= 0", name="ck_request_line_issued_nonneg"),
    )

    op.add_column(
        "stock_issues",
        sa.Column("stock_request_id", ID, sa.ForeignKey("stock_requests.id", ondelete="SET NULL")),
    )
    op.create_index("ix_stock_issues_stock_request_id", "stock_issues", ["stock_request_id"])


def downgrade() -> None:
    op.drop_index("ix_stock_issues_stock_request_id", table_name="stock_issues")
    op.drop_column("stock_issues", "stock_request_id")
    op.drop_table("stock_request_lines")
    op.drop_index("ix_stock_requests_status", table_name="stock_requests")
    op.drop_index("ix_stock_requests_hotel_id", table_name="stock_requests")
    op.drop_table("stock_requests")
    stock_request_status.drop(op.get_bind(), checkfirst=True)
