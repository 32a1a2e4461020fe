"""
models.py
Lightweight domain helpers (status values, payment methods, dataclasses).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

MEMBERSHIP_STATUSES = ("active", "expired", "cancelled")

# Stored value -> label shown to staff and printed on invoices
PAYMENT_METHODS = {
    "cash": "Cash",
    "bank_transfer": "Bank Transfer",
    "qris": "QRIS",
    "gopay": "GoPay",
    "ovo": "OVO",
    "shopeepay": "ShopeePay",
    "credit_card": "Credit Card",
    "other": "Other",
}

# 'pending', 'failed' and 'refunded' are valid stored values, but nothing in
# the workflow moves a payment into or out of them.
PAYMENT_STATUSES = {
    "paid": "PAID",
    "pending": "AWAITING CONFIRMATION",
    "failed": "FAILED",
    "refunded": "REFUNDED",
}

GENDERS = ("male", "female")
STAFF_ROLES = ("owner", "admin", "staff")

# Per (member, calendar day) check-in states
CHECKIN_NONE = "NONE"
CHECKIN_CHECKED_IN = "CHECKED_IN"
CHECKIN_CHECKED_OUT = "CHECKED_OUT"


def _date(value) -> date | None:
    if value is None or value == "":
        return None
    return date.fromisoformat(str(value)[:10])


def _datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class Member:
    id: int | None
    member_code: str
    full_name: str
    phone: str
    email: str | None
    gender: str | None
    date_of_birth: date | None
    address: str | None
    emergency_contact: str | None
    photo_url: str | None
    is_active: bool
    join_date: date
    notes: str | None = None

    @classmethod
    def from_row(cls, row) -> "Member":
        return cls(
            id=row["id"],
            member_code=row["member_code"],
            full_name=row["full_name"],
            phone=row["phone"],
            email=row["email"],
            gender=row["gender"],
            date_of_birth=_date(row["date_of_birth"]),
            address=row["address"],
            emergency_contact=row["emergency_contact"],
            photo_url=row["photo_url"],
            is_active=bool(row["is_active"]),
            join_date=_date(row["join_date"]),
            notes=row["notes"],
        )


@dataclass(frozen=True)
class Package:
    id: int | None
    package_name: str
    duration_days: int
    price: float
    is_active: bool
    description: str | None = None

    @classmethod
    def from_row(cls, row) -> "Package":
        return cls(
            id=row["id"],
            package_name=row["package_name"],
            duration_days=int(row["duration_days"]),
            price=float(row["price"]),
            is_active=bool(row["is_active"]),
            description=row["description"],
        )


@dataclass(frozen=True)
class Membership:
    id: int | None
    member_id: int
    package_id: int | None
    start_date: date
    end_date: date
    status: str  # see MEMBERSHIP_STATUSES
    price_paid: float  # package price at creation time
    notes: str | None = None

    def is_active_on(self, day: date) -> bool:
        return self.status == "active" and self.end_date >= day

    @classmethod
    def from_row(cls, row) -> "Membership":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            package_id=row["package_id"],
            start_date=_date(row["start_date"]),
            end_date=_date(row["end_date"]),
            status=row["status"],
            price_paid=float(row["price_paid"]),
            notes=row["notes"],
        )


@dataclass(frozen=True)
class CheckIn:
    id: int | None
    member_id: int
    check_in_date: date
    check_in_time: datetime
    check_out_time: datetime | None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @classmethod
    def from_row(cls, row) -> "CheckIn":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            check_in_date=_date(row["check_in_date"]),
            check_in_time=_datetime(row["check_in_time"]),
            check_out_time=_datetime(row["check_out_time"]),
        )


@dataclass(frozen=True)
class Payment:
    id: int | None
    member_id: int
    membership_id: int | None
    payment_date: date
    amount: float
    payment_method: str  # see PAYMENT_METHODS
    payment_status: str  # see PAYMENT_STATUSES
    invoice_number: str
    notes: str | None = None
    received_by: str | None = None

    @classmethod
    def from_row(cls, row) -> "Payment":
        return cls(
            id=row["id"],
            member_id=row["member_id"],
            membership_id=row["membership_id"],
            payment_date=_date(row["payment_date"]),
            amount=float(row["amount"]),
            payment_method=row["payment_method"],
            payment_status=row["payment_status"],
            invoice_number=row["invoice_number"],
            notes=row["notes"],
            received_by=row["received_by"],
        )


@dataclass(frozen=True)
class SessionDuration:
    """Length of a gym visit. `final` is False while the member is still inside."""

    elapsed: timedelta
    final: bool


@dataclass(frozen=True)
class MembershipResult:
    """
    Outcome of the membership -> payment sequence.
    The membership is always persisted; `payment` is None and `warning` is set
    when the payment step failed.
    """

    membership: Membership
    payment: Payment | None
    warning: str | None = None

    @property
    def payment_ok(self) -> bool:
        return self.payment is not None and self.warning is None


@dataclass(frozen=True)
class RevenueSummary:
    total: float
    count: int
    average: float
    by_method: list[tuple[str, float]]  # sorted by amount, descending


@dataclass(frozen=True)
class CheckInStats:
    total_checkins: int
    unique_members: int
    total_hours: float


@dataclass(frozen=True)
class DashboardStats:
    total_members: int
    active_memberships: int
    monthly_revenue: float
    checkins_today: int
    expiring_soon: int
