from __future__ import annotations

import sqlite3

import pytest

import config
import db
from errors import ConflictError, NotFoundError, TransientError, ValidationError


def test_init_db_is_idempotent():
    db.init_db("another-hash")

    rows = db.fetch_all("SELECT username, role FROM admin_users")
    assert [(r["username"], r["role"]) for r in rows] == [(config.DEFAULT_ADMIN_USERNAME, "owner")]
    assert db.is_force_password_change()


def test_integrity_errors_are_translated(member):
    with pytest.raises(ConflictError) as info:
        db.execute(
            "INSERT INTO members(member_code, full_name, phone, join_date, created_at) VALUES(?,?,?,?,?)",
            (member.member_code, "Dup", "081234567899", "2024-01-01", "2024-01-01T00:00:00"),
        )
    assert "members.member_code" in info.value.detail

    with pytest.raises(NotFoundError):
        db.execute(
            "INSERT INTO check_ins(member_id, check_in_date, check_in_time) VALUES(?,?,?)",
            (999, "2024-01-01", "2024-01-01T09:00:00"),
        )

    with pytest.raises(ValidationError):
        db.execute(
            "INSERT INTO membership_packages(package_name, duration_days, price, created_at) VALUES(?,?,?,?)",
            ("Bad", 0, 1, "2024-01-01T00:00:00"),
        )


def test_reads_are_retried_then_give_up(monkeypatch):
    attempts = []

    class FlakyConn:
        row_factory = None

        def execute(self, sql, params=()):
            attempts.append(sql)
            raise sqlite3.OperationalError("database is locked")

        def commit(self):
            pass

        def rollback(self):
            pass

        def close(self):
            pass

    monkeypatch.setattr(db.sqlite3, "connect", lambda *a, **kw: FlakyConn())
    monkeypatch.setattr(config, "READ_RETRIES", 2)

    with pytest.raises(TransientError):
        db.fetch_one("SELECT 1")
    # PRAGMA per connection, one connection per attempt
    assert len(attempts) == 3


def test_writes_are_not_retried(monkeypatch):
    attempts = []

    class BusyConn:
        row_factory = None

        def execute(self, sql, params=()):
            if sql.startswith("PRAGMA"):
                return None
            attempts.append(sql)
            raise sqlite3.OperationalError("database is locked")

        def commit(self):
            pass

        def rollback(self):
            pass

        def close(self):
            pass

    monkeypatch.setattr(db.sqlite3, "connect", lambda *a, **kw: BusyConn())

    with pytest.raises(TransientError):
        db.execute("INSERT INTO app_settings(key, value) VALUES('a', 'b')")
    assert len(attempts) == 1
