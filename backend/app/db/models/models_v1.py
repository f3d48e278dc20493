from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base
from backend.app.db.models.core_types import (
    Role,
    OrderStatus,
    LineStatus,
    PaymentMode,
    PaymentTerms,
    LedgerDirection,
    IssueRequestType,
    StockRequestStatus,
    AlertType,
    AlertLevel,
    AlertPeriod,
    AlertStatus,
)

# Quantities carry three decimals (kg, l), money two.
Quantity = Numeric(14, 3)
Money = Numeric(14, 2)


# ---------- MASTER DATA ----------
class Hotel(Base):
    __tablename__ = "hotels"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    branch: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    @property
    def display_name(self) -> str:
        return f"{self.name} - {self.branch}"


class Item(Base):
    __tablename__ = "items"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    default_gst_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=5, nullable=False)
    last_procured_price: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("default_gst_percentage >= 0 AND default_gst_percentage <= 100", name="ck_item_gst_0_100"),
        CheckConstraint("last_procured_price >= 0", name="ck_item_last_price_nonneg"),
    )


class Vendor(Base):
    __tablename__ = "vendors"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(32))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(Text)
    gst_number: Mapped[str | None] = mapped_column(String(32))
    pan_number: Mapped[str | None] = mapped_column(String(16))
    payment_terms: Mapped[PaymentTerms] = mapped_column(
        Enum(PaymentTerms, name="payment_terms"),
        default=PaymentTerms.days_30,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class Recipe(Base):
    __tablename__ = "recipes"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    dish_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"
    recipe_id: Mapped[int] = mapped_column(ForeignKey("recipes.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    quantity_required: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)

    recipe: Mapped[Recipe] = relationship(back_populates="ingredients")
    item: Mapped[Item] = relationship()

    __table_args__ = (CheckConstraint("quantity_required > 0", name="ck_recipe_ingredient_qty_pos"),)


# ---------- AUTH ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="role"), nullable=False)
    hotel_id: Mapped[int | None] = mapped_column(ForeignKey("hotels.id", ondelete="SET NULL"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel | None] = relationship()


# ---------- PROCUREMENT ----------
class ProcurementOrder(Base):
    __tablename__ = "procurement_orders"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("vendors.id", ondelete="SET NULL"))
    bill_number: Mapped[str] = mapped_column(String(64), nullable=False)
    bill_date: Mapped[date] = mapped_column(Date, nullable=False)
    bill_reference: Mapped[str | None] = mapped_column(String(512))

    subtotal: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    gst_total: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    final_amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"),
        default=OrderStatus.pending_md_approval,
        nullable=False,
        index=True,
    )
    remarks: Mapped[str | None] = mapped_column(Text)

    requested_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    approved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    bill_uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_mode: Mapped[PaymentMode | None] = mapped_column(Enum(PaymentMode, name="payment_mode"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    lines: Mapped[list["ProcurementOrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProcurementOrderLine.id",
    )

    __table_args__ = (
        Index("ix_procurement_orders_vendor_bill", "vendor_name", "bill_number"),
    )


class ProcurementOrderLine(Base):
    __tablename__ = "procurement_order_lines"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("procurement_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Money, nullable=False)
    gst_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    gst_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    status: Mapped[LineStatus] = mapped_column(
        Enum(LineStatus, name="order_line_status"),
        default=LineStatus.pending,
        nullable=False,
    )
    remarks: Mapped[str | None] = mapped_column(String(255))

    order: Mapped[ProcurementOrder] = relationship(back_populates="lines")
    item: Mapped[Item] = relationship()

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_line_qty_pos"),
        CheckConstraint("price_per_unit >= 0", name="ck_order_line_price_nonneg"),
        CheckConstraint("gst_percentage >= 0 AND gst_percentage <= 100", name="ck_order_line_gst_0_100"),
    )


class PaymentEntry(Base):
    __tablename__ = "payment_entries"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("procurement_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount_paid: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_mode: Mapped[PaymentMode] = mapped_column(Enum(PaymentMode, name="payment_mode"), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (CheckConstraint("amount_paid >= 0", name="ck_payment_amount_nonneg"),)


# ---------- INVENTORY ----------
class CentralStoreStock(Base):
    __tablename__ = "central_store_stock"
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    quantity_on_hand: Mapped[Decimal] = mapped_column(Quantity, default=0, nullable=False)
    previous_max_stock: Mapped[Decimal] = mapped_column(Quantity, default=0, nullable=False)
    reorder_level_percent: Mapped[int] = mapped_column(Integer, default=65, nullable=False)
    minimum_stock_level: Mapped[Decimal] = mapped_column(Quantity, default=0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    item: Mapped[Item] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_on_hand >= 0", name="ck_store_on_hand_nonneg"),
        CheckConstraint("reorder_level_percent >= 0 AND reorder_level_percent <= 100", name="ck_store_reorder_0_100"),
    )

    @property
    def is_low_stock(self) -> bool:
        if not self.previous_max_stock:
            return False
        threshold = Decimal(self.previous_max_stock) * self.reorder_level_percent / 100
        return Decimal(self.quantity_on_hand) < threshold


class StockRequest(Base):
    """A hotel's request for stock from the central store, fulfilled in one or more issues."""

    __tablename__ = "stock_requests"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False, index=True)
    requested_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[StockRequestStatus] = mapped_column(
        Enum(StockRequestStatus, name="stock_request_status"),
        default=StockRequestStatus.pending,
        nullable=False,
        index=True,
    )
    remarks: Mapped[str | None] = mapped_column(Text)
    fulfilled_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    fulfilled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel] = relationship()
    lines: Mapped[list["StockRequestLine"]] = relationship(back_populates="request", cascade="all, delete-orphan")


class StockRequestLine(Base):
    __tablename__ = "stock_request_lines"
    request_id: Mapped[int] = mapped_column(ForeignKey("stock_requests.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    requested_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    issued_quantity: Mapped[Decimal] = mapped_column(Quantity, default=0, nullable=False)
    status: Mapped[StockRequestStatus] = mapped_column(
        Enum(StockRequestStatus, name="stock_request_status"),
        default=StockRequestStatus.pending,
        nullable=False,
    )

    request: Mapped[StockRequest] = relationship(back_populates="lines")
    item: Mapped[Item] = relationship()

    __table_args__ = (
        CheckConstraint("requested_quantity > 0", name="ck_request_line_qty_pos"),
        CheckConstraint("issued_quantity >= 0", name="ck_request_line_issued_nonneg"),
    )


class StockIssue(Base):
    __tablename__ = "stock_issues"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    issue_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False, index=True)
    request_type: Mapped[IssueRequestType] = mapped_column(
        Enum(IssueRequestType, name="issue_request_type"),
        nullable=False,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    issued_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    approved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    stock_request_id: Mapped[int | None] = mapped_column(
        ForeignKey("stock_requests.id", ondelete="SET NULL"), index=True
    )
    remarks: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel] = relationship()
    lines: Mapped[list["StockIssueLine"]] = relationship(back_populates="issue", cascade="all, delete-orphan")


class StockIssueLine(Base):
    __tablename__ = "stock_issue_lines"
    issue_id: Mapped[int] = mapped_column(ForeignKey("stock_issues.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    quantity_issued: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    stock_after_issue: Mapped[Decimal] = mapped_column(Quantity, nullable=False)

    issue: Mapped[StockIssue] = relationship(back_populates="lines")
    item: Mapped[Item] = relationship()

    __table_args__ = (CheckConstraint("quantity_issued > 0", name="ck_issue_line_qty_pos"),)


class StockLedgerEntry(Base):
    __tablename__ = "stock_ledger_entries"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    direction: Mapped[LedgerDirection] = mapped_column(Enum(LedgerDirection, name="ledger_direction"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    source_vendor: Mapped[str | None] = mapped_column(String(255))
    destination_hotel_id: Mapped[int | None] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"))
    order_id: Mapped[int | None] = mapped_column(ForeignKey("procurement_orders.id", ondelete="RESTRICT"))
    issue_id: Mapped[int | None] = mapped_column(ForeignKey("stock_issues.id", ondelete="RESTRICT"))

    opening_balance: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    closing_balance: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_ledger_qty_pos"),
        Index("ix_stock_ledger_item_date", "item_id", "entry_date"),
    )


class ConsumptionEntry(Base):
    __tablename__ = "consumption_entries"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    reported_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel] = relationship()
    lines: Mapped[list["ConsumptionLine"]] = relationship(back_populates="entry", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_consumption_hotel_date", "hotel_id", "entry_date"),)


class ConsumptionLine(Base):
    __tablename__ = "consumption_lines"
    entry_id: Mapped[int] = mapped_column(ForeignKey("consumption_entries.id", ondelete="CASCADE"), primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    quantity_consumed: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    opening_balance: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    closing_balance: Mapped[Decimal] = mapped_column(Quantity, nullable=False)

    entry: Mapped[ConsumptionEntry] = relationship(back_populates="lines")
    item: Mapped[Item] = relationship()

    __table_args__ = (CheckConstraint("quantity_consumed >= 0", name="ck_consumption_qty_nonneg"),)


class SalesEntry(Base):
    __tablename__ = "sales_entries"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_sales_amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    reported_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel] = relationship()
    lines: Mapped[list["SalesLine"]] = relationship(back_populates="entry", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_sales_hotel_date", "hotel_id", "entry_date"),)


class SalesLine(Base):
    __tablename__ = "sales_lines"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    entry_id: Mapped[int] = mapped_column(ForeignKey("sales_entries.id", ondelete="CASCADE"), nullable=False)
    dish_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity_sold: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    price_per_unit: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)

    entry: Mapped[SalesEntry] = relationship(back_populates="lines")

    __table_args__ = (CheckConstraint("quantity_sold >= 0", name="ck_sales_qty_nonneg"),)


class ExpectedConsumption(Base):
    __tablename__ = "expected_consumption"
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), primary_key=True)
    entry_date: Mapped[date] = mapped_column(Date, primary_key=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), primary_key=True)
    # base units (g, ml, piece)
    expected_quantity: Mapped[Decimal] = mapped_column(Quantity, default=0, nullable=False)
    base_unit: Mapped[str] = mapped_column(String(32), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


# ---------- LEAKAGE ALERTS ----------
class LeakageAlert(Base):
    __tablename__ = "leakage_alerts"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    alert_type: Mapped[AlertType] = mapped_column(Enum(AlertType, name="alert_type"), nullable=False)
    alert_level: Mapped[AlertLevel] = mapped_column(Enum(AlertLevel, name="alert_level"), nullable=False)
    hotel_id: Mapped[int] = mapped_column(ForeignKey("hotels.id", ondelete="RESTRICT"), nullable=False)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    leakage_percentage: Mapped[float] = mapped_column(Numeric(7, 2, asdecimal=False), nullable=False)
    issued_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    consumed_quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    period: Mapped[AlertPeriod] = mapped_column(Enum(AlertPeriod, name="alert_period"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[AlertStatus] = mapped_column(
        Enum(AlertStatus, name="alert_status"),
        default=AlertStatus.active,
        nullable=False,
    )
    assigned_to: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    estimated_loss: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    hotel: Mapped[Hotel] = relationship()
    item: Mapped[Item] = relationship()
    notes: Mapped[list["LeakageAlertNote"]] = relationship(
        back_populates="alert",
        cascade="all, delete-orphan",
        order_by="LeakageAlertNote.id",
    )

    __table_args__ = (
        Index("ix_leakage_alert_hotel_status", "hotel_id", "status", "created_at"),
        Index("ix_leakage_alert_type_status", "alert_type", "status"),
    )


class LeakageAlertNote(Base):
    __tablename__ = "leakage_alert_notes"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    alert_id: Mapped[int] = mapped_column(ForeignKey("leakage_alerts.id", ondelete="CASCADE"), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    added_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    alert: Mapped[LeakageAlert] = relationship(back_populates="notes")
