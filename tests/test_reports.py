from __future__ import annotations

from datetime import date

import pytest

import checkins
import db
import payments
import reports
from errors import ValidationError


def test_empty_revenue_has_zero_average():
    summary = reports.revenue_summary(date(2024, 1, 1), date(2024, 1, 31))

    assert summary.total == 0
    assert summary.count == 0
    assert summary.average == 0
    assert summary.by_method == []


def test_revenue_summary_counts_only_paid_in_window(member):
    payments.record_payment(member.id, 100000, "cash", payment_date=date(2024, 1, 5))
    payments.record_payment(member.id, 300000, "qris", payment_date=date(2024, 1, 20))
    payments.record_payment(member.id, 50000, "cash", payment_date=date(2024, 1, 25))
    payments.record_payment(member.id, 999999, "cash", payment_date=date(2024, 2, 1))
    refunded = payments.record_payment(member.id, 77777, "cash", payment_date=date(2024, 1, 10))
    db.execute("UPDATE payments SET payment_status = 'refunded' WHERE id = ?", (refunded.id,))

    summary = reports.revenue_summary(date(2024, 1, 1), date(2024, 1, 31))

    assert summary.total == 450000
    assert summary.count == 3
    assert summary.average == 150000
    assert summary.by_method == [("qris", 300000), ("cash", 150000)]


@pytest.mark.parametrize(
    "period, expected",
    [
        ("daily", (date(2024, 5, 15), date(2024, 5, 15))),
        ("weekly", (date(2024, 5, 12), date(2024, 5, 18))),
        ("monthly", (date(2024, 5, 1), date(2024, 5, 31))),
        ("yearly", (date(2024, 1, 1), date(2024, 12, 31))),
    ],
)
def test_period_range(period, expected):
    # 2024-05-15 is a Wednesday
    assert reports.period_range(period, today=date(2024, 5, 15)) == expected


def test_weekly_range_on_sunday_starts_that_day():
    assert reports.period_range("weekly", today=date(2024, 5, 12)) == (date(2024, 5, 12), date(2024, 5, 18))


def test_custom_period_validation():
    assert reports.period_range("custom", start=date(2024, 1, 1), end=date(2024, 1, 2)) == (
        date(2024, 1, 1),
        date(2024, 1, 2),
    )
    with pytest.raises(ValidationError):
        reports.period_range("custom", start=date(2024, 1, 2), end=date(2024, 1, 1))
    with pytest.raises(ValidationError):
        reports.period_range("custom")
    with pytest.raises(ValidationError):
        reports.period_range("fortnightly")


def test_checkin_stats():
    rows = [
        {"member_id": 1, "check_in_time": "2024-01-01T09:00:00", "check_out_time": "2024-01-01T10:30:00"},
        {"member_id": 1, "check_in_time": "2024-01-02T09:00:00", "check_out_time": "2024-01-02T10:00:00"},
        {"member_id": 2, "check_in_time": "2024-01-02T11:00:00", "check_out_time": None},
    ]
    stats = reports.checkin_stats(rows)

    assert stats.total_checkins == 3
    assert stats.unique_members == 2
    assert stats.total_hours == pytest.approx(2.5)


def test_revenue_by_month(member):
    assert list(reports.revenue_by_month().columns) == ["month", "revenue"]

    payments.record_payment(member.id, 1000, payment_date=date(2024, 1, 5))
    payments.record_payment(member.id, 2000, payment_date=date(2024, 1, 6))
    payments.record_payment(member.id, 5000, payment_date=date(2024, 2, 1))

    df = reports.revenue_by_month()
    assert df.to_dict("records") == [
        {"month": "2024-02", "revenue": 5000.0},
        {"month": "2024-01", "revenue": 3000.0},
    ]


def test_dashboard_stats(active_member, other_member):
    checkins.check_in(active_member.id)

    stats = reports.dashboard_stats()

    assert stats.total_members == 2
    assert stats.active_memberships == 1
    assert stats.monthly_revenue == 300000
    assert stats.checkins_today == 1
    assert stats.expiring_soon == 0
