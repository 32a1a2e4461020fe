from __future__ import annotations

import itertools
from datetime import date

import pytest

import memberships
import payments
import reports
from errors import ConflictError, NotFoundError, ValidationError


def test_record_payment_defaults(member):
    p = payments.record_payment(member.id, 150000, "bank_transfer", notes="  top up ")

    assert p.payment_status == "paid"
    assert p.payment_date == date.today()
    assert p.notes == "top up"
    assert p.invoice_number.startswith(f"INV-{date.today():%Y%m%d}-")


@pytest.mark.parametrize("amount", [0, -5, "abc", None, "inf", "nan", "1e400", float("inf")])
def test_record_payment_rejects_bad_amount(member, amount):
    with pytest.raises(ValidationError):
        payments.record_payment(member.id, amount)
    assert payments.list_payments() == []


def test_record_payment_rejects_unknown_method(member):
    with pytest.raises(ValidationError):
        payments.record_payment(member.id, 1000, "bitcoin")


def test_record_payment_for_missing_member():
    with pytest.raises(NotFoundError):
        payments.record_payment(4242, 1000)


def test_record_payment_for_missing_membership(member):
    with pytest.raises(NotFoundError):
        payments.record_payment(member.id, 1000, membership_id=777)


def test_membership_of_another_member_is_accepted(member, other_member, package):
    result = memberships.create_membership(other_member.id, package.id)

    p = payments.record_payment(member.id, 1000, membership_id=result.membership.id)
    assert p.member_id == member.id
    assert p.membership_id == result.membership.id


def test_invoice_numbers_are_unique_over_many_payments(member):
    numbers = {payments.record_payment(member.id, 1000).invoice_number for _ in range(1000)}
    assert len(numbers) == 1000


def test_invoice_collision_retries_with_fresh_token(member):
    first = payments.record_payment(member.id, 1000)
    tokens = iter([first.invoice_number, "INV-MANUAL-0001"])

    p = payments.record_payment(member.id, 2000, invoice_generator=lambda: next(tokens))

    assert p.invoice_number == "INV-MANUAL-0001"
    assert payments.get_payment(first.id).amount == 1000


def test_invoice_collision_gives_up_after_bounded_attempts(member):
    first = payments.record_payment(member.id, 1000)
    calls = itertools.count()

    def always_same():
        next(calls)
        return first.invoice_number

    with pytest.raises(ConflictError):
        payments.record_payment(member.id, 2000, invoice_generator=always_same)
    assert next(calls) == payments.INVOICE_ATTEMPTS
    assert len(payments.list_payments(member_id=member.id)) == 1


def test_delete_payment_keeps_membership_and_updates_revenue(member, package):
    result = memberships.create_membership(member.id, package.id)
    today = date.today()
    assert reports.revenue_summary(today, today).total == 300000

    payments.delete_payment(result.payment.id)

    assert memberships.has_active_membership(member.id)
    assert reports.revenue_summary(today, today).total == 0


def test_delete_missing_payment():
    with pytest.raises(NotFoundError):
        payments.delete_payment(31337)


def test_list_payments_filters(member, other_member, package):
    memberships.create_membership(member.id, package.id, as_of=date(2024, 3, 1))
    payments.record_payment(other_member.id, 50000, "ovo", payment_date=date(2024, 3, 15))
    payments.record_payment(other_member.id, 70000, "cash", payment_date=date(2024, 4, 2))

    march = payments.list_payments(start=date(2024, 3, 1), end=date(2024, 3, 31))
    assert [r["amount"] for r in march] == [50000, 300000]
    assert march[1]["package_name"] == "Monthly"
    assert march[1]["membership_start"] == "2024-03-01"

    assert len(payments.list_payments(member_id=other_member.id)) == 2
    assert payments.list_payments(status="refunded") == []
    with pytest.raises(ValidationError):
        payments.list_payments(status="lost")


def test_labels():
    assert payments.method_label("bank_transfer") == "Bank Transfer"
    assert payments.method_label("barter") == "barter"
    assert payments.status_label("pending") == "AWAITING CONFIRMATION"
