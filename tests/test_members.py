from __future__ import annotations

from datetime import date

import pytest

import checkins
import members
import memberships
import packages
import payments
from errors import ConflictError, NotFoundError, ValidationError


def test_member_codes_are_sequential(member, other_member):
    assert member.member_code == "GYM0001"
    assert other_member.member_code == "GYM0002"
    assert member.join_date == date.today()
    assert member.is_active


def test_member_code_continues_after_highest(member, other_member):
    members.delete_member(member.id)

    third = members.create_member("Budi Santoso", "081234567803")
    assert third.member_code == "GYM0003"


@pytest.mark.parametrize(
    "name, phone, email",
    [
        ("", "081234567801", None),
        ("Budi", "", None),
        ("Budi", "12345", None),
        ("Budi", "081234567801", "not-an-email"),
    ],
)
def test_create_member_validation(name, phone, email):
    with pytest.raises(ValidationError):
        members.create_member(name, phone, email=email)


def test_phone_formats_accepted():
    assert members.create_member("A", "+62 812 3456 7890").phone == "+62 812 3456 7890"
    assert members.create_member("B", "6281234567890").member_code == "GYM0002"


def test_update_member(member):
    updated = members.update_member(member.id, "Ahmad H.", "081299999999", email="ahmad@example.com",
                                    gender="male", date_of_birth=date(1990, 6, 1))

    assert updated.full_name == "Ahmad H."
    assert updated.email == "ahmad@example.com"
    assert updated.date_of_birth == date(1990, 6, 1)
    assert updated.member_code == member.member_code


def test_update_missing_member():
    with pytest.raises(NotFoundError):
        members.update_member(99, "X", "081234567801")


def test_deactivate_member(member, other_member):
    members.set_member_active(member.id, False)

    assert [m.id for m in members.list_members(active_only=True)] == [other_member.id]
    assert not members.get_member(member.id).is_active


def test_search_members_by_code_name_and_phone(member, other_member):
    assert [m.id for m in members.search_members("siti")] == [other_member.id]
    assert [m.id for m in members.search_members("GYM0001")] == [member.id]
    assert len(members.search_members("0812345678")) == 2
    with pytest.raises(ValidationError):
        members.search_members("  ")


def test_delete_member_cascades(active_member):
    ci = checkins.check_in(active_member.id)

    members.delete_member(active_member.id)

    assert members.find_member(active_member.id) is None
    assert memberships.list_memberships(member_id=active_member.id) == []
    assert payments.list_payments() == []
    with pytest.raises(NotFoundError):
        checkins.get_checkin(ci.id)


def test_package_validation():
    with pytest.raises(ValidationError) as info:
        packages.create_package("", 0, -1)
    assert len(info.value.errors) == 3


def test_list_packages_active_only():
    a = packages.create_package("Quarterly", 90, 800000)
    b = packages.create_package("Monthly", 30, 300000)
    packages.create_package("Retired", 10, 1000, is_active=False)

    assert [p.id for p in packages.list_packages()] == [b.id, a.id]
    assert len(packages.list_packages(active_only=False)) == 3


def test_delete_package_blocked_while_in_use(active_member, package):
    with pytest.raises(ConflictError):
        packages.delete_package(package.id)


def test_delete_package_after_membership_ends(member, package):
    memberships.create_membership(member.id, package.id, as_of=date(2024, 1, 1))
    memberships.expire_lapsed_memberships(date(2024, 3, 1))

    packages.delete_package(package.id)

    with pytest.raises(NotFoundError):
        packages.get_package(package.id)
    assert memberships.list_memberships(member_id=member.id)[0]["package_id"] is None


@pytest.mark.parametrize("duration", [1.5, "2.5", 36501, 3_000_000, "inf", "nan"])
def test_package_duration_must_be_whole_and_bounded(duration):
    with pytest.raises(ValidationError):
        packages.create_package("Forever", duration, 1000)
    assert packages.list_packages(active_only=False) == []


@pytest.mark.parametrize("price", ["inf", "nan", "1e400"])
def test_package_price_must_be_finite(price):
    with pytest.raises(ValidationError):
        packages.create_package("Monthly", 30, price)


def test_longest_package_still_sells(member):
    pkg = packages.create_package("Lifetime", 36500, 5000000)

    result = memberships.create_membership(member.id, pkg.id)

    assert result.membership.end_date > result.membership.start_date
    assert result.payment_ok
