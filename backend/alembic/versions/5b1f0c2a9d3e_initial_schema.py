"""initial schema

Revision ID: 5b1f0c2a9d3e
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b1f0c2a9d3e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
QTY = sa.Numeric(14, 3)
MONEY = sa.Numeric(14, 2)
PCT = sa.Numeric(5, 2)

role = sa.Enum(
    "superadmin", "md", "procurement_officer", "store_manager", "hotel_manager", "accounts",
    name="role",
)
payment_terms = sa.Enum("immediate", "days_15", "days_30", "days_45", "days_60", name="payment_terms")
order_status = sa.Enum(
    "pending_md_approval", "md_approved", "rejected", "pending_payment", "paid",
    name="order_status",
)
order_line_status = sa.Enum("pending", "approved", "rejected", name="order_line_status")
payment_mode = sa.Enum("upi", "cash", "bank_transfer", name="payment_mode")
ledger_direction = sa.Enum("inward", "outward", name="ledger_direction")
issue_request_type = sa.Enum("manual", "system_request", name="issue_request_type")
alert_type = sa.Enum("red", "yellow", "green", name="alert_type")
alert_level = sa.Enum("critical", "warning", "normal", name="alert_level")
alert_period = sa.Enum("daily", "weekly", "monthly", name="alert_period")
alert_status = sa.Enum("active", "investigating", "resolved", "dismissed", name="alert_status")

ENUMS = (
    role, payment_terms, order_status, order_line_status, payment_mode, ledger_direction,
    issue_request_type, alert_type, alert_level, alert_period, alert_status,
)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # ---------- MASTER DATA ----------
    op.create_table(
        "hotels",
        sa.Column("id", ID, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("branch", sa.String(200), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_table(
        "items",
        sa.Column("id", ID, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("default_gst_percentage", PCT, nullable=False),
        sa.Column("last_procured_price", MONEY, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.CheckConstraint("default_gst_percentage >= 0 AND default_gst_percentage <= 100", name="ck_item_gst_0_100"),
        sa.CheckConstraint("last_procured_price >= 0", name="ck_item_last_price_nonneg"),
    )
    op.create_table(
        "users",
        sa.Column("id", ID, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", role, nullable=False),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="SET NULL")),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _ts("created_at"),
    )
    op.create_table(
        "vendors",
        sa.Column("id", ID, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("contact_person", sa.String(200)),
        sa.Column("phone", sa.String(32)),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.Text()),
        sa.Column("gst_number", sa.String(32)),
        sa.Column("pan_number", sa.String(16)),
        sa.Column("payment_terms", payment_terms, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_table(
        "recipes",
        sa.Column("id", ID, primary_key=True),
        sa.Column("dish_name", sa.String(255), nullable=False, unique=True),
        sa.Column("created_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("created_at"),
    )
    op.create_table(
        "recipe_ingredients",
        sa.Column("recipe_id", ID, sa.ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity_required", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.CheckConstraint("quantity_required > 0", name="ck_recipe_ingredient_qty_pos"),
    )

    # ---------- PROCUREMENT ----------
    op.create_table(
        "procurement_orders",
        sa.Column("id", ID, primary_key=True),
        sa.Column("vendor_name", sa.String(255), nullable=False),
        sa.Column("vendor_id", ID, sa.ForeignKey("vendors.id", ondelete="SET NULL")),
        sa.Column("bill_number", sa.String(64), nullable=False),
        sa.Column("bill_date", sa.Date(), nullable=False),
        sa.Column("bill_reference", sa.String(512)),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("gst_total", MONEY, nullable=False),
        sa.Column("final_amount", MONEY, nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("remarks", sa.Text()),
        sa.Column("requested_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("approved_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("approved_at", nullable=True),
        sa.Column("rejected_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("rejected_at", nullable=True),
        _ts("bill_uploaded_at", nullable=True),
        sa.Column("paid_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("paid_at", nullable=True),
        sa.Column("payment_mode", payment_mode),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_procurement_orders_status", "procurement_orders", ["status"])
    op.create_index("ix_procurement_orders_vendor_bill", "procurement_orders", ["vendor_name", "bill_number"])

    op.create_table(
        "procurement_order_lines",
        sa.Column("id", ID, primary_key=True),
        sa.Column("order_id", ID, sa.ForeignKey("procurement_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("price_per_unit", MONEY, nullable=False),
        sa.Column("gst_percentage", PCT, nullable=False),
        sa.Column("gst_amount", MONEY, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("status", order_line_status, nullable=False),
        sa.Column("remarks", sa.String(255)),
        sa.CheckConstraint("quantity > 0", name="ck_order_line_qty_pos"),
        sa.CheckConstraint("price_per_unit >= 0", name="ck_order_line_price_nonneg"),
        sa.CheckConstraint("gst_percentage >= 0 AND gst_percentage <= 100", name="ck_order_line_gst_0_100"),
    )
    op.create_index("ix_procurement_order_lines_order_id", "procurement_order_lines", ["order_id"])

    op.create_table(
        "payment_entries",
        sa.Column("id", ID, primary_key=True),
        sa.Column("order_id", ID, sa.ForeignKey("procurement_orders.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("vendor_name", sa.String(255), nullable=False),
        sa.Column("amount_paid", MONEY, nullable=False),
        sa.Column("payment_mode", payment_mode, nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("paid_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("remarks", sa.Text()),
        _ts("created_at"),
        sa.CheckConstraint("amount_paid >= 0", name="ck_payment_amount_nonneg"),
    )
    op.create_index("ix_payment_entries_order_id", "payment_entries", ["order_id"])
    op.create_index("ix_payment_entries_vendor_name", "payment_entries", ["vendor_name"])

    # ---------- INVENTORY ----------
    op.create_table(
        "central_store_stock",
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity_on_hand", QTY, nullable=False),
        sa.Column("previous_max_stock", QTY, nullable=False),
        sa.Column("reorder_level_percent", sa.Integer(), nullable=False),
        sa.Column("minimum_stock_level", QTY, nullable=False),
        _ts("last_updated"),
        sa.CheckConstraint("quantity_on_hand >= 0", name="ck_store_on_hand_nonneg"),
        sa.CheckConstraint("reorder_level_percent >= 0 AND reorder_level_percent <= 100", name="ck_store_reorder_0_100"),
    )
    op.create_table(
        "stock_issues",
        sa.Column("id", ID, primary_key=True),
        sa.Column("issue_number", sa.String(32), nullable=False, unique=True),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("request_type", issue_request_type, nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("issued_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("approved_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("remarks", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_stock_issues_hotel_id", "stock_issues", ["hotel_id"])
    op.create_index("ix_stock_issues_issue_date", "stock_issues", ["issue_date"])

    op.create_table(
        "stock_issue_lines",
        sa.Column("issue_id", ID, sa.ForeignKey("stock_issues.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity_issued", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("stock_after_issue", QTY, nullable=False),
        sa.CheckConstraint("quantity_issued > 0", name="ck_issue_line_qty_pos"),
    )
    op.create_table(
        "stock_ledger_entries",
        sa.Column("id", ID, primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("direction", ledger_direction, nullable=False),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("source_vendor", sa.String(255)),
        sa.Column("destination_hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT")),
        sa.Column("order_id", ID, sa.ForeignKey("procurement_orders.id", ondelete="RESTRICT")),
        sa.Column("issue_id", ID, sa.ForeignKey("stock_issues.id", ondelete="RESTRICT")),
        sa.Column("opening_balance", QTY, nullable=False),
        sa.Column("closing_balance", QTY, nullable=False),
        sa.Column("created_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("created_at"),
        sa.CheckConstraint("quantity > 0", name="ck_ledger_qty_pos"),
    )
    op.create_index("ix_stock_ledger_entries_item_id", "stock_ledger_entries", ["item_id"])
    op.create_index("ix_stock_ledger_item_date", "stock_ledger_entries", ["item_id", "entry_date"])

    op.create_table(
        "consumption_entries",
        sa.Column("id", ID, primary_key=True),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("reported_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("remarks", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_consumption_hotel_date", "consumption_entries", ["hotel_id", "entry_date"])

    op.create_table(
        "consumption_lines",
        sa.Column("entry_id", ID, sa.ForeignKey("consumption_entries.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity_consumed", QTY, nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("opening_balance", QTY, nullable=False),
        sa.Column("closing_balance", QTY, nullable=False),
        sa.CheckConstraint("quantity_consumed >= 0", name="ck_consumption_qty_nonneg"),
    )
    op.create_table(
        "sales_entries",
        sa.Column("id", ID, primary_key=True),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("total_sales_amount", MONEY, nullable=False),
        sa.Column("reported_by", ID, sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("remarks", sa.Text()),
        _ts("created_at"),
    )
    op.create_index("ix_sales_hotel_date", "sales_entries", ["hotel_id", "entry_date"])

    op.create_table(
        "sales_lines",
        sa.Column("id", ID, primary_key=True),
        sa.Column("entry_id", ID, sa.ForeignKey("sales_entries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dish_name", sa.String(255), nullable=False),
        sa.Column("quantity_sold", QTY, nullable=False),
        sa.Column("price_per_unit", MONEY, nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.CheckConstraint("quantity_sold >= 0", name="ck_sales_qty_nonneg"),
    )
    op.create_table(
        "expected_consumption",
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("entry_date", sa.Date(), primary_key=True),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("expected_quantity", QTY, nullable=False),
        sa.Column("base_unit", sa.String(32), nullable=False),
        _ts("updated_at"),
    )

    # ---------- LEAKAGE ALERTS ----------
    op.create_table(
        "leakage_alerts",
        sa.Column("id", ID, primary_key=True),
        sa.Column("alert_type", alert_type, nullable=False),
        sa.Column("alert_level", alert_level, nullable=False),
        sa.Column("hotel_id", ID, sa.ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("item_id", ID, sa.ForeignKey("items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("leakage_percentage", sa.Numeric(7, 2), nullable=False),
        sa.Column("issued_quantity", QTY, nullable=False),
        sa.Column("consumed_quantity", QTY, nullable=False),
        sa.Column("period", alert_period, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", alert_status, nullable=False),
        sa.Column("assigned_to", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("resolved_at", nullable=True),
        sa.Column("resolved_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("estimated_loss", MONEY, nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_leakage_alert_hotel_status", "leakage_alerts", ["hotel_id", "status", "created_at"])
    op.create_index("ix_leakage_alert_type_status", "leakage_alerts", ["alert_type", "status"])

    op.create_table(
        "leakage_alert_notes",
        sa.Column("id", ID, primary_key=True),
        sa.Column("alert_id", ID, sa.ForeignKey("leakage_alerts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("added_by", ID, sa.ForeignKey("users.id", ondelete="SET NULL")),
        _ts("created_at"),
    )


def downgrade() -> None:
    for table in (
        "leakage_alert_notes",
        "leakage_alerts",
        "expected_consumption",
        "sales_lines",
        "sales_entries",
        "consumption_lines",
        "consumption_entries",
        "stock_ledger_entries",
        "stock_issue_lines",
        "stock_issues",
        "central_store_stock",
        "payment_entries",
        "procurement_order_lines",
        "procurement_orders",
        "recipe_ingredients",
        "recipes",
        "vendors",
        "users",
        "items",
        "hotels",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in ENUMS:
        enum.drop(bind, checkfirst=True)
