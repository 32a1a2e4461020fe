"""
checkins.py
Check-in tracker. Per (member, calendar day): NONE -> CHECKED_IN -> CHECKED_OUT.
A member gets one check-in row per day; the UNIQUE(member_id, check_in_date)
constraint in the store is what settles races between terminals.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

import db
import memberships
import utils
from errors import ConflictError, NotFoundError, PreconditionFailed
from models import CHECKIN_CHECKED_IN, CHECKIN_CHECKED_OUT, CHECKIN_NONE, CheckIn, SessionDuration

logger = logging.getLogger(__name__)

ALREADY_CHECKED_IN = "Member has already checked in today."


def today_checkin(member_id: int, today: date | None = None) -> CheckIn | None:
    today = today or utils.today()
    row = db.fetch_one(
        "SELECT * FROM check_ins WHERE member_id = ? AND check_in_date = ?",
        (member_id, today.isoformat()),
    )
    return CheckIn.from_row(row) if row else None


def checkin_state(member_id: int, today: date | None = None) -> str:
    ci = today_checkin(member_id, today)
    if ci is None:
        return CHECKIN_NONE
    return CHECKIN_CHECKED_IN if ci.is_open else CHECKIN_CHECKED_OUT


def check_in(member_id: int, now: datetime | None = None) -> CheckIn:
    now = now or utils.now()
    today = now.date()

    # Re-validated here even though the UI checks first: another terminal may
    # have changed things since the page was loaded.
    if not memberships.has_active_membership(member_id, today):
        raise PreconditionFailed("Member does not have an active membership.")
    if today_checkin(member_id, today) is not None:
        raise ConflictError(ALREADY_CHECKED_IN)

    try:
        checkin_id = db.execute(
            "INSERT INTO check_ins(member_id, check_in_date, check_in_time) VALUES(?,?,?)",
            (member_id, today.isoformat(), now.isoformat(timespec="seconds")),
        )
    except ConflictError:
        raise ConflictError(ALREADY_CHECKED_IN) from None
    logger.info("Member %s checked in (%s)", member_id, checkin_id)
    return get_checkin(checkin_id)


def check_out(checkin_id: int, now: datetime | None = None) -> CheckIn:
    """Rejects a second check-out instead of silently succeeding again."""
    now = now or utils.now()
    ci = get_checkin(checkin_id)
    if not ci.is_open:
        raise ConflictError("Member has already checked out.")
    changed = db.execute_rowcount(
        "UPDATE check_ins SET check_out_time = ? WHERE id = ? AND check_out_time IS NULL",
        (now.isoformat(timespec="seconds"), checkin_id),
    )
    if not changed:
        raise ConflictError("Member has already checked out.")
    logger.info("Member %s checked out (%s)", ci.member_id, checkin_id)
    return get_checkin(checkin_id)


def delete_checkin(checkin_id: int) -> None:
    """Unconditional staff correction; frees the day for a new check-in."""
    changed = db.execute_rowcount("DELETE FROM check_ins WHERE id = ?", (checkin_id,))
    if not changed:
        raise NotFoundError("Check-in not found.")
    logger.info("Deleted check-in %s", checkin_id)


def get_checkin(checkin_id: int) -> CheckIn:
    row = db.fetch_one("SELECT * FROM check_ins WHERE id = ?", (checkin_id,))
    if not row:
        raise NotFoundError("Check-in not found.")
    return CheckIn.from_row(row)


def duration(ci: CheckIn, now: datetime | None = None) -> SessionDuration:
    if ci.check_out_time is not None:
        return SessionDuration(ci.check_out_time - ci.check_in_time, final=True)
    now = now or utils.now()
    return SessionDuration(max(now - ci.check_in_time, timedelta(0)), final=False)


def format_duration(d: SessionDuration) -> str:
    minutes = int(d.elapsed.total_seconds() // 60)
    text = f"{minutes // 60}h {minutes % 60}m"
    if not d.final:
        text += " (still active)"
    return text


def list_checkins(start: date | None = None, end: date | None = None, member_id: int | None = None):
    """Check-in rows joined with member code, name and phone, newest first."""
    sql = """
        SELECT c.*, m.member_code, m.full_name, m.phone
        FROM check_ins c
        JOIN members m ON m.id = c.member_id
        WHERE 1=1
    """
    params: list = []
    if start:
        sql += " AND c.check_in_date >= ?"
        params.append(start.isoformat())
    if end:
        sql += " AND c.check_in_date <= ?"
        params.append(end.isoformat())
    if member_id is not None:
        sql += " AND c.member_id = ?"
        params.append(member_id)
    sql += " ORDER BY c.check_in_date DESC, c.check_in_time DESC"
    return db.fetch_all(sql, tuple(params))
