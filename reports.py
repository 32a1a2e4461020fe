"""
reports.py
Read-only rollups over payments, check-ins and memberships. No state of its own.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

import pandas as pd

import config
import db
import utils
from errors import ValidationError
from models import CheckInStats, DashboardStats, RevenueSummary

PERIODS = ("daily", "weekly", "monthly", "yearly", "custom")


def period_range(period: str, today: date | None = None, start: date | None = None,
                 end: date | None = None) -> tuple[date, date]:
    """Inclusive (start, end) for a report period. Weeks run Sunday to Saturday."""
    today = today or utils.today()
    if period == "daily":
        return today, today
    if period == "weekly":
        # date.weekday(): Monday=0 ... Sunday=6
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        return week_start, week_start + timedelta(days=6)
    if period == "monthly":
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    if period == "yearly":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if period == "custom":
        if start is None or end is None:
            raise ValidationError("Custom period needs both a start and an end date.")
        if end < start:
            raise ValidationError("End date must not be before start date.")
        return start, end
    raise ValidationError(f"Unknown period: {period}.")


def summarize_revenue(rows) -> RevenueSummary:
    """Works on any iterable of rows/dicts with `amount` and `payment_method`."""
    total = 0.0
    count = 0
    by_method: dict[str, float] = {}
    for r in rows:
        amount = float(r["amount"])
        total += amount
        count += 1
        by_method[r["payment_method"]] = by_method.get(r["payment_method"], 0.0) + amount
    average = total / count if count else 0.0
    ranked = sorted(by_method.items(), key=lambda kv: kv[1], reverse=True)
    return RevenueSummary(total=total, count=count, average=average, by_method=ranked)


def revenue_summary(start: date, end: date) -> RevenueSummary:
    rows = db.fetch_all(
        """
        SELECT amount, payment_method FROM payments
        WHERE payment_status = 'paid' AND payment_date >= ? AND payment_date <= ?
        """,
        (start.isoformat(), end.isoformat()),
    )
    return summarize_revenue(rows)


def revenue_by_month() -> pd.DataFrame:
    rows = db.fetch_all(
        """
        SELECT strftime('%Y-%m', payment_date) AS month, SUM(amount) AS revenue
        FROM payments
        WHERE payment_status = 'paid'
        GROUP BY strftime('%Y-%m', payment_date)
        ORDER BY month DESC
        """
    )
    df = pd.DataFrame([dict(r) for r in rows])
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])
    return df


def checkin_stats(rows) -> CheckInStats:
    """Total visits, distinct members and hours of completed (checked-out) visits."""
    total = 0
    members: set = set()
    seconds = 0.0
    for r in rows:
        total += 1
        members.add(r["member_id"])
        if r["check_out_time"]:
            delta = datetime.fromisoformat(r["check_out_time"]) - datetime.fromisoformat(r["check_in_time"])
            seconds += delta.total_seconds()
    return CheckInStats(total_checkins=total, unique_members=len(members), total_hours=seconds / 3600)


def dashboard_stats(today: date | None = None) -> DashboardStats:
    today = today or utils.today()
    month_start, month_end = period_range("monthly", today)
    total_members = db.fetch_one("SELECT COUNT(*) AS c FROM members")["c"]
    active = db.fetch_one(
        "SELECT COUNT(DISTINCT member_id) AS c FROM member_memberships WHERE status='active' AND end_date >= ?",
        (today.isoformat(),),
    )["c"]
    revenue = db.fetch_one(
        """
        SELECT COALESCE(SUM(amount),0) AS s FROM payments
        WHERE payment_status='paid' AND payment_date >= ? AND payment_date <= ?
        """,
        (month_start.isoformat(), month_end.isoformat()),
    )["s"]
    checkins_today = db.fetch_one(
        "SELECT COUNT(*) AS c FROM check_ins WHERE check_in_date = ?", (today.isoformat(),)
    )["c"]
    expiring = db.fetch_one(
        "SELECT COUNT(*) AS c FROM member_memberships WHERE status='active' AND end_date BETWEEN ? AND ?",
        (today.isoformat(), (today + timedelta(days=config.EXPIRING_DAYS)).isoformat()),
    )["c"]
    return DashboardStats(
        total_members=int(total_members),
        active_memberships=int(active),
        monthly_revenue=float(revenue),
        checkins_today=int(checkins_today),
        expiring_soon=int(expiring),
    )
