from __future__ import annotations

from datetime import date, timedelta

import pytest

import db
import memberships
import packages
import payments
from errors import ConflictError, NotFoundError, TransientError


def test_membership_dates_and_price_snapshot(member, package):
    result = memberships.create_membership(member.id, package.id, as_of=date(2024, 1, 1))

    ms = result.membership
    assert ms.start_date == date(2024, 1, 1)
    assert ms.end_date == date(2024, 1, 31)
    assert ms.price_paid == 300000
    assert ms.status == "active"


def test_price_paid_does_not_follow_later_price_change(member, package):
    result = memberships.create_membership(member.id, package.id)
    packages.update_package(package.id, "Monthly", 30, 350000)

    assert memberships.get_membership(result.membership.id).price_paid == 300000


def test_second_membership_in_a_row_conflicts(member, package):
    memberships.create_membership(member.id, package.id)

    with pytest.raises(ConflictError):
        memberships.create_membership(member.id, package.id)

    assert len(memberships.list_memberships(member_id=member.id)) == 1


def test_new_membership_allowed_after_previous_lapsed(member, package):
    today = date.today()
    memberships.create_membership(member.id, package.id, as_of=today - timedelta(days=40))

    assert not memberships.has_active_membership(member.id, today)
    result = memberships.create_membership(member.id, package.id, as_of=today)

    statuses = sorted(r["status"] for r in memberships.list_memberships(member_id=member.id))
    assert statuses == ["active", "expired"]
    assert result.membership.is_active_on(today)


def test_has_active_membership_respects_end_date(member, package):
    memberships.create_membership(member.id, package.id, as_of=date(2024, 1, 1))

    assert memberships.has_active_membership(member.id, date(2024, 1, 31))
    assert not memberships.has_active_membership(member.id, date(2024, 2, 1))


def test_cancelled_membership_is_not_active(member, package):
    result = memberships.create_membership(member.id, package.id)
    memberships.cancel_membership(result.membership.id)

    assert not memberships.has_active_membership(member.id)
    with pytest.raises(ConflictError):
        memberships.cancel_membership(result.membership.id)


def test_missing_package_fails_before_any_write(member):
    with pytest.raises(NotFoundError):
        memberships.create_membership(member.id, 999)

    assert memberships.list_memberships(member_id=member.id) == []
    assert payments.list_payments(member_id=member.id) == []


def test_inactive_package_is_rejected(member):
    pkg = packages.create_package("Old plan", 30, 100000, is_active=False)

    with pytest.raises(NotFoundError):
        memberships.create_membership(member.id, pkg.id)


def test_membership_records_linked_payment(member, package):
    result = memberships.create_membership(member.id, package.id, payment_method="qris")

    assert result.payment_ok
    assert result.payment.membership_id == result.membership.id
    assert result.payment.amount == 300000
    assert result.payment.payment_method == "qris"
    assert result.payment.payment_status == "paid"


def test_payment_failure_keeps_membership_and_warns(member, package, monkeypatch):
    def broken(*args, **kwargs):
        raise TransientError("Database is busy or unavailable. Please try again.")

    monkeypatch.setattr(payments, "record_payment", broken)

    result = memberships.create_membership(member.id, package.id)

    assert result.payment is None
    assert not result.payment_ok
    assert result.warning.startswith(memberships.PAYMENT_WARNING)
    assert memberships.has_active_membership(member.id)


def test_expire_lapsed_memberships(member, other_member, package):
    memberships.create_membership(member.id, package.id, as_of=date(2024, 1, 1))
    memberships.create_membership(other_member.id, package.id, as_of=date(2024, 1, 20))

    assert memberships.expire_lapsed_memberships(date(2024, 2, 5)) == 1
    rows = {r["member_id"]: r["status"] for r in memberships.list_memberships()}
    assert rows == {member.id: "expired", other_member.id: "active"}


def test_expiring_memberships_window(member, other_member, package):
    today = date.today()
    memberships.create_membership(member.id, package.id, as_of=today - timedelta(days=27))
    memberships.create_membership(other_member.id, package.id, as_of=today)

    rows = memberships.expiring_memberships(today, days=7)
    assert [r["member_id"] for r in rows] == [member.id]


def test_one_active_row_per_member_enforced_by_store(member, package):
    memberships.create_membership(member.id, package.id)

    with pytest.raises(ConflictError):
        db.execute(
            """
            INSERT INTO member_memberships(member_id, package_id, start_date, end_date, status, price_paid, created_at)
            VALUES(?,?,?,?,'active',?,?)
            """,
            (member.id, package.id, "2099-01-01", "2099-01-31", 1, db.now_iso()),
        )
