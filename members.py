"""
members.py
Member directory: identity records, search, cascading delete.
"""

from __future__ import annotations

import logging
from datetime import date

import db
import utils
from errors import ConflictError, NotFoundError, ValidationError
from models import Member

logger = logging.getLogger(__name__)

CODE_PREFIX = "GYM"
CODE_ATTEMPTS = 5


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def next_member_code() -> str:
    row = db.fetch_one(
        """
        SELECT MAX(CAST(SUBSTR(member_code, ?) AS INTEGER)) AS n
        FROM members
        WHERE member_code LIKE ?
        """,
        (len(CODE_PREFIX) + 1, f"{CODE_PREFIX}%"),
    )
    n = (row["n"] or 0) if row else 0
    return f"{CODE_PREFIX}{n + 1:04d}"


def create_member(
    full_name: str,
    phone: str,
    email: str | None = None,
    gender: str | None = None,
    date_of_birth: date | None = None,
    address: str | None = None,
    emergency_contact: str | None = None,
    photo_url: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
    join_date: date | None = None,
) -> Member:
    errors = utils.validate_member_inputs(full_name, phone, email, gender)
    if errors:
        raise ValidationError(errors)

    join_date = join_date or utils.today()
    # Two staff terminals may compute the same code; the UNIQUE index decides.
    for _ in range(CODE_ATTEMPTS):
        code = next_member_code()
        try:
            member_id = db.execute(
                """
                INSERT INTO members(member_code, full_name, phone, email, gender, date_of_birth, address,
                    emergency_contact, photo_url, is_active, join_date, notes, created_by, created_at)
                VALUES(?,?,?,?,?,?,?,?,?,1,?,?,?,?)
                """,
                (
                    code,
                    full_name.strip(),
                    phone.strip(),
                    _clean(email),
                    gender or None,
                    date_of_birth.isoformat() if date_of_birth else None,
                    _clean(address),
                    _clean(emergency_contact),
                    _clean(photo_url),
                    join_date.isoformat(),
                    _clean(notes),
                    created_by,
                    db.now_iso(),
                ),
            )
        except ConflictError:
            logger.warning("Member code %s already taken, generating another", code)
            continue
        logger.info("Created member %s (%s)", code, member_id)
        return get_member(member_id)
    raise ConflictError("Could not allocate a member code. Please try again.")


def update_member(
    member_id: int,
    full_name: str,
    phone: str,
    email: str | None = None,
    gender: str | None = None,
    date_of_birth: date | None = None,
    address: str | None = None,
    emergency_contact: str | None = None,
    photo_url: str | None = None,
    notes: str | None = None,
) -> Member:
    errors = utils.validate_member_inputs(full_name, phone, email, gender)
    if errors:
        raise ValidationError(errors)
    changed = db.execute_rowcount(
        """
        UPDATE members SET full_name=?, phone=?, email=?, gender=?, date_of_birth=?, address=?,
            emergency_contact=?, photo_url=?, notes=?, updated_at=?
        WHERE id=?
        """,
        (
            full_name.strip(),
            phone.strip(),
            _clean(email),
            gender or None,
            date_of_birth.isoformat() if date_of_birth else None,
            _clean(address),
            _clean(emergency_contact),
            _clean(photo_url),
            _clean(notes),
            db.now_iso(),
            member_id,
        ),
    )
    if not changed:
        raise NotFoundError("Member not found.")
    logger.info("Updated member %s", member_id)
    return get_member(member_id)


def set_member_active(member_id: int, is_active: bool) -> None:
    changed = db.execute_rowcount(
        "UPDATE members SET is_active=?, updated_at=? WHERE id=?",
        (1 if is_active else 0, db.now_iso(), member_id),
    )
    if not changed:
        raise NotFoundError("Member not found.")
    logger.info("Member %s is_active=%s", member_id, is_active)


def delete_member(member_id: int) -> None:
    """Hard delete. Memberships, payments and check-ins go with it (ON DELETE CASCADE)."""
    changed = db.execute_rowcount("DELETE FROM members WHERE id = ?", (member_id,))
    if not changed:
        raise NotFoundError("Member not found.")
    logger.info("Deleted member %s with all dependent records", member_id)


def find_member(member_id: int) -> Member | None:
    row = db.fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))
    return Member.from_row(row) if row else None


def get_member(member_id: int) -> Member:
    member = find_member(member_id)
    if member is None:
        raise NotFoundError("Member not found.")
    return member


def list_members(active_only: bool = False, search: str = "") -> list[Member]:
    sql = "SELECT * FROM members WHERE 1=1"
    params: list = []
    if active_only:
        sql += " AND is_active = 1"
    if search.strip():
        sql += " AND (member_code LIKE ? OR full_name LIKE ? OR phone LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like])
    sql += " ORDER BY full_name ASC"
    return [Member.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def search_members(query: str, limit: int = 10) -> list[Member]:
    """Case-insensitive substring match on code, name or phone."""
    if not query.strip():
        raise ValidationError("Enter a member code, name or phone number.")
    like = f"%{query.strip()}%"
    rows = db.fetch_all(
        """
        SELECT * FROM members
        WHERE member_code LIKE ? OR full_name LIKE ? OR phone LIKE ?
        ORDER BY full_name ASC
        LIMIT ?
        """,
        (like, like, like, limit),
    )
    return [Member.from_row(r) for r in rows]
