"""
payments.py
Payment / invoice recorder: the write side of revenue reporting.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

import db
import utils
from errors import ConflictError, NotFoundError, ValidationError
from models import PAYMENT_METHODS, PAYMENT_STATUSES, Payment

logger = logging.getLogger(__name__)

INVOICE_ATTEMPTS = 5


def next_invoice_number(issued_on: date | None = None) -> str:
    """
    INV-YYYYMMDD-NNNNN. NNNNN comes from a store-side AUTOINCREMENT sequence,
    so numbers never repeat even across days or terminals.
    """
    issued_on = issued_on or utils.today()
    seq = db.execute("INSERT INTO invoice_sequence(issued_at) VALUES(?)", (db.now_iso(),))
    return f"INV-{issued_on:%Y%m%d}-{seq:05d}"


def record_payment(
    member_id: int,
    amount,
    payment_method: str = "cash",
    membership_id: int | None = None,
    notes: str | None = None,
    payment_date: date | None = None,
    received_by: str | None = None,
    invoice_generator: Callable[[], str] | None = None,
) -> Payment:
    errors = utils.validate_amount(amount)
    if payment_method not in PAYMENT_METHODS:
        errors.append(f"Unknown payment method: {payment_method}.")
    if errors:
        raise ValidationError(errors)

    if membership_id is not None:
        owner = db.fetch_one("SELECT member_id FROM member_memberships WHERE id = ?", (membership_id,))
        if owner is None:
            raise NotFoundError("Membership not found.")
        if owner["member_id"] != member_id:
            # Accepted as-is: payment and membership ownership are not cross-checked.
            logger.warning(
                "Payment for member %s references membership %s owned by member %s",
                member_id, membership_id, owner["member_id"],
            )

    payment_date = payment_date or utils.today()
    generate = invoice_generator or (lambda: next_invoice_number(payment_date))

    for attempt in range(1, INVOICE_ATTEMPTS + 1):
        invoice_number = generate()
        try:
            payment_id = db.execute(
                """
                INSERT INTO payments(member_id, membership_id, payment_date, amount, payment_method,
                    payment_status, invoice_number, notes, received_by, created_at)
                VALUES(?,?,?,?,?,'paid',?,?,?,?)
                """,
                (
                    member_id,
                    membership_id,
                    payment_date.isoformat(),
                    float(amount),
                    payment_method,
                    invoice_number,
                    (notes or "").strip() or None,
                    received_by,
                    db.now_iso(),
                ),
            )
        except ConflictError as exc:
            if exc.detail and "invoice_number" in exc.detail:
                logger.warning("Invoice number %s collided (attempt %d/%d)", invoice_number, attempt, INVOICE_ATTEMPTS)
                continue
            raise
        logger.info("Recorded payment %s (%s) for member %s", invoice_number, payment_id, member_id)
        return get_payment(payment_id)

    raise ConflictError("Could not generate a unique invoice number. Please try again.")


def get_payment(payment_id: int) -> Payment:
    row = db.fetch_one("SELECT * FROM payments WHERE id = ?", (payment_id,))
    if not row:
        raise NotFoundError("Payment not found.")
    return Payment.from_row(row)


def delete_payment(payment_id: int) -> None:
    """
    Hard delete. The membership it funded is left untouched; revenue reports
    simply recompute from the remaining rows.
    """
    changed = db.execute_rowcount("DELETE FROM payments WHERE id = ?", (payment_id,))
    if not changed:
        raise NotFoundError("Payment not found.")
    logger.info("Deleted payment %s", payment_id)


def list_payments(
    start: date | None = None,
    end: date | None = None,
    status: str | None = None,
    member_id: int | None = None,
    limit: int | None = None,
    offset: int = 0,
):
    """Payment rows joined with member and membership/package fields, newest first."""
    if status is not None and status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status: {status}.")
    sql = """
        SELECT p.*, m.member_code, m.full_name, m.phone,
               ms.start_date AS membership_start, ms.end_date AS membership_end,
               pk.package_name
        FROM payments p
        JOIN members m ON m.id = p.member_id
        LEFT JOIN member_memberships ms ON ms.id = p.membership_id
        LEFT JOIN membership_packages pk ON pk.id = ms.package_id
        WHERE 1=1
    """
    params: list = []
    if start:
        sql += " AND p.payment_date >= ?"
        params.append(start.isoformat())
    if end:
        sql += " AND p.payment_date <= ?"
        params.append(end.isoformat())
    if status:
        sql += " AND p.payment_status = ?"
        params.append(status)
    if member_id is not None:
        sql += " AND p.member_id = ?"
        params.append(member_id)
    sql += " ORDER BY p.payment_date DESC, p.id DESC"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])
    return db.fetch_all(sql, tuple(params))


def method_label(method: str) -> str:
    return PAYMENT_METHODS.get(method, method)


def status_label(status: str) -> str:
    return PAYMENT_STATUSES.get(status, status.upper())
