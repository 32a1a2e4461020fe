"""
memberships.py
Membership ledger: active/expired state per member and creation of new
membership periods together with their payment.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

import db
import packages
import payments
import utils
from errors import ConflictError, GymError, NotFoundError
from models import Membership, MembershipResult

logger = logging.getLogger(__name__)

PAYMENT_WARNING = "Membership created, but recording the payment failed"


def get_active_membership(member_id: int, as_of: date | None = None) -> Membership | None:
    as_of = as_of or utils.today()
    row = db.fetch_one(
        """
        SELECT * FROM member_memberships
        WHERE member_id = ? AND status = 'active' AND end_date >= ?
        ORDER BY end_date DESC
        LIMIT 1
        """,
        (member_id, as_of.isoformat()),
    )
    return Membership.from_row(row) if row else None


def has_active_membership(member_id: int, as_of: date | None = None) -> bool:
    return get_active_membership(member_id, as_of) is not None


def expire_lapsed_memberships(as_of: date | None = None, member_id: int | None = None) -> int:
    """Move 'active' rows whose end_date is before `as_of` to 'expired'."""
    as_of = as_of or utils.today()
    sql = "UPDATE member_memberships SET status = 'expired' WHERE status = 'active' AND end_date < ?"
    params: list = [as_of.isoformat()]
    if member_id is not None:
        sql += " AND member_id = ?"
        params.append(member_id)
    changed = db.execute_rowcount(sql, tuple(params))
    if changed:
        logger.info("Expired %d lapsed membership(s)", changed)
    return changed


def create_membership(
    member_id: int,
    package_id: int,
    notes: str | None = None,
    payment_method: str = "cash",
    created_by: str | None = None,
    as_of: date | None = None,
) -> MembershipResult:
    """
    Two steps, deliberately not atomic:
    1. persist the membership (all invariants checked, nothing written on failure)
    2. record its payment; a failure here is returned as a warning and the
       membership from step 1 is kept.
    """
    start = as_of or utils.today()

    try:
        package = packages.get_package(package_id)
    except NotFoundError:
        raise NotFoundError("Selected package no longer exists.") from None
    if not package.is_active:
        raise NotFoundError(f"Package '{package.package_name}' is no longer available.")

    if has_active_membership(member_id, start):
        raise ConflictError("Member still has an active membership. A new one cannot be created.")

    # Frees the one-active-per-member index for lapsed rows.
    expire_lapsed_memberships(start, member_id=member_id)

    end = start + timedelta(days=package.duration_days)
    try:
        membership_id = db.execute(
            """
            INSERT INTO member_memberships(member_id, package_id, start_date, end_date, status,
                price_paid, notes, created_by, created_at)
            VALUES(?,?,?,?,'active',?,?,?,?)
            """,
            (member_id, package.id, start.isoformat(), end.isoformat(), package.price,
             (notes or "").strip() or None, created_by, db.now_iso()),
        )
    except ConflictError:
        raise ConflictError("Member still has an active membership. A new one cannot be created.") from None
    membership = get_membership(membership_id)
    logger.info("Created membership %s for member %s (%s to %s)", membership_id, member_id, start, end)

    try:
        payment = payments.record_payment(
            member_id,
            package.price,
            payment_method=payment_method,
            membership_id=membership_id,
            notes=f"Membership payment {package.package_name}",
            payment_date=start,
            received_by=created_by,
        )
    except GymError as exc:
        logger.warning("Membership %s kept, payment step failed: %s", membership_id, exc.message)
        return MembershipResult(membership, None, f"{PAYMENT_WARNING}: {exc.message}")

    return MembershipResult(membership, payment)


def get_membership(membership_id: int) -> Membership:
    row = db.fetch_one("SELECT * FROM member_memberships WHERE id = ?", (membership_id,))
    if not row:
        raise NotFoundError("Membership not found.")
    return Membership.from_row(row)


def cancel_membership(membership_id: int) -> Membership:
    membership = get_membership(membership_id)
    if membership.status != "active":
        raise ConflictError(f"Membership is already {membership.status}.")
    db.execute_rowcount(
        "UPDATE member_memberships SET status = 'cancelled' WHERE id = ? AND status = 'active'",
        (membership_id,),
    )
    logger.info("Cancelled membership %s", membership_id)
    return get_membership(membership_id)


def list_memberships(member_id: int | None = None, status: str | None = None):
    """Membership rows joined with package name and member code/name, newest first."""
    sql = """
        SELECT ms.*, pk.package_name, m.member_code, m.full_name
        FROM member_memberships ms
        JOIN members m ON m.id = ms.member_id
        LEFT JOIN membership_packages pk ON pk.id = ms.package_id
        WHERE 1=1
    """
    params: list = []
    if member_id is not None:
        sql += " AND ms.member_id = ?"
        params.append(member_id)
    if status:
        sql += " AND ms.status = ?"
        params.append(status)
    sql += " ORDER BY ms.start_date DESC, ms.id DESC"
    return db.fetch_all(sql, tuple(params))


def expiring_memberships(as_of: date | None = None, days: int = 7):
    as_of = as_of or utils.today()
    until = as_of + timedelta(days=days)
    return db.fetch_all(
        """
        SELECT ms.id, ms.member_id, ms.end_date, m.member_code, m.full_name, m.phone, pk.package_name
        FROM member_memberships ms
        JOIN members m ON m.id = ms.member_id
        LEFT JOIN membership_packages pk ON pk.id = ms.package_id
        WHERE ms.status = 'active' AND ms.end_date BETWEEN ? AND ?
        ORDER BY ms.end_date ASC
        """,
        (as_of.isoformat(), until.isoformat()),
    )
