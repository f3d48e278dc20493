import enum

class Role(str, enum.Enum):
    superadmin = "superadmin"
    md = "md"
    procurement_officer = "procurement_officer"
    store_manager = "store_manager"
    hotel_manager = "hotel_manager"
    accounts = "accounts"

class OrderStatus(str, enum.Enum):
    pending_md_approval = "pending_md_approval"
    md_approved = "md_approved"
    rejected = "rejected"
    pending_payment = "pending_payment"
    paid = "paid"

class LineStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class PaymentMode(str, enum.Enum):
    upi = "upi"
    cash = "cash"
    bank_transfer = "bank-transfer"

class PaymentTerms(str, enum.Enum):
    immediate = "immediate"
    days_15 = "15_days"
    days_30 = "30_days"
    days_45 = "45_days"
    days_60 = "60_days"

class LedgerDirection(str, enum.Enum):
    inward = "INWARD"
    outward = "OUTWARD"

class IssueRequestType(str, enum.Enum):
    manual = "manual"
    system_request = "system-request"

class AlertType(str, enum.Enum):
    red = "red"
    yellow = "yellow"
    green = "green"

class AlertLevel(str, enum.Enum):
    critical = "critical"
    warning = "warning"
    normal = "normal"

class AlertPeriod(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"

class AlertStatus(str, enum.Enum):
    active = "active"
    investigating = "investigating"
    resolved = "resolved"
    dismissed = "dismissed"

class StockRequestStatus(str, enum.Enum):
    pending = "pending"
    partially_issued = "partially_issued"
    fulfilled = "fulfilled"
    rejected = "rejected"
