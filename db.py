"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)

The database is the single source of truth: uniqueness of check-ins per day,
of invoice numbers and of the active membership per member is enforced here
with constraints, not only by the callers' pre-checks.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, TypeVar

import config
from errors import ConflictError, NotFoundError, TransientError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def get_conn():
    try:
        conn = sqlite3.connect(config.DB_FILE, timeout=config.DB_TIMEOUT, check_same_thread=False)
    except sqlite3.OperationalError as exc:
        raise TransientError("Database is unavailable. Please try again.") from exc
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        yield conn
        conn.commit()
    except sqlite3.IntegrityError as exc:
        conn.rollback()
        raise _translate_integrity_error(exc) from exc
    except sqlite3.OperationalError as exc:
        conn.rollback()
        logger.error("Store operation failed: %s", exc)
        raise TransientError("Database is busy or unavailable. Please try again.") from exc
    finally:
        conn.close()


def _translate_integrity_error(exc: sqlite3.IntegrityError) -> Exception:
    msg = str(exc)
    if msg.startswith("UNIQUE constraint failed"):
        return ConflictError("Record conflicts with existing data.", detail=msg)
    if msg.startswith("FOREIGN KEY constraint failed"):
        return NotFoundError("Referenced record does not exist.")
    return ValidationError(f"Invalid data: {msg}")


def _with_read_retry(fn: Callable[[], T]) -> T:
    # Reads are idempotent, so a busy/locked store is retried a few times.
    attempt = 0
    while True:
        try:
            return fn()
        except TransientError:
            if attempt >= config.READ_RETRIES:
                raise
            attempt += 1
            logger.warning("Read failed, retrying (attempt %d/%d)", attempt, config.READ_RETRIES)
            time.sleep(config.RETRY_BACKOFF * attempt)


def execute(sql: str, params: tuple = ()) -> int:
    """Run one write statement. Never retried. Returns lastrowid."""
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def execute_rowcount(sql: str, params: tuple = ()) -> int:
    """Run one UPDATE/DELETE and return how many rows it touched."""
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def fetch_one(sql: str, params: tuple = ()):
    def _run():
        with get_conn() as conn:
            cur = conn.execute(sql, params)
            return cur.fetchone()

    return _with_read_retry(_run)


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    def _run():
        with get_conn() as conn:
            cur = conn.execute(sql, params)
            return cur.fetchall()

    return _with_read_retry(_run)


def _create_tables() -> None:
    with get_conn() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS admin_users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL DEFAULT '',
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'staff' CHECK(role IN ('owner','admin','staff')),
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_code TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL,
                phone TEXT NOT NULL,
                email TEXT,
                gender TEXT CHECK(gender IS NULL OR gender IN ('male','female')),
                date_of_birth TEXT,
                address TEXT,
                emergency_contact TEXT,
                photo_url TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                join_date TEXT NOT NULL,
                notes TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS membership_packages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                package_name TEXT NOT NULL,
                description TEXT,
                duration_days INTEGER NOT NULL CHECK(duration_days > 0),
                price REAL NOT NULL CHECK(price > 0),
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS member_memberships (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                package_id INTEGER,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                status TEXT NOT NULL CHECK(status IN ('active','expired','cancelled')),
                price_paid REAL NOT NULL,
                notes TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE,
                FOREIGN KEY(package_id) REFERENCES membership_packages(id) ON DELETE SET NULL
            );

            -- one 'active' row per member; lapsed rows are moved to 'expired' before a new one is created
            CREATE UNIQUE INDEX IF NOT EXISTS ux_memberships_one_active
                ON member_memberships(member_id) WHERE status = 'active';

            CREATE TABLE IF NOT EXISTS check_ins (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                check_in_date TEXT NOT NULL,
                check_in_time TEXT NOT NULL,
                check_out_time TEXT,
                notes TEXT,
                FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE,
                UNIQUE(member_id, check_in_date)
            );

            CREATE TABLE IF NOT EXISTS invoice_sequence (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                issued_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                membership_id INTEGER,
                payment_date TEXT NOT NULL,
                amount REAL NOT NULL CHECK(amount > 0),
                payment_method TEXT NOT NULL CHECK(payment_method IN
                    ('cash','bank_transfer','qris','gopay','ovo','shopeepay','credit_card','other')),
                payment_status TEXT NOT NULL DEFAULT 'paid' CHECK(payment_status IN
                    ('paid','pending','failed','refunded')),
                invoice_number TEXT NOT NULL UNIQUE,
                notes TEXT,
                received_by TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE,
                FOREIGN KEY(membership_id) REFERENCES member_memberships(id) ON DELETE SET NULL
            );

            CREATE INDEX IF NOT EXISTS idx_payments_date ON payments(payment_date);
            CREATE INDEX IF NOT EXISTS idx_checkins_date ON check_ins(check_in_date);

            -- Small settings table (used to force password change on first login)
            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def init_db(default_admin_hash: str) -> None:
    """
    Initialize the database.
    - Create tables
    - Insert default admin if no staff account exists
    - Force password change on first login
    """
    _create_tables()

    admin = fetch_one("SELECT id FROM admin_users LIMIT 1")
    if not admin:
        execute(
            "INSERT INTO admin_users(username, full_name, password_hash, role, created_at) VALUES(?,?,?,?,?)",
            (config.DEFAULT_ADMIN_USERNAME, "Administrator", default_admin_hash, "owner", now_iso()),
        )
        _set_setting("force_password_change", "1")
        logger.info("Created default admin account")
    else:
        # ensure setting exists
        if _get_setting("force_password_change") is None:
            _set_setting("force_password_change", "0")


def is_force_password_change() -> bool:
    val = fetch_one("SELECT value FROM app_settings WHERE key = ?", ("force_password_change",))
    return bool(val and str(val["value"]) == "1")


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
