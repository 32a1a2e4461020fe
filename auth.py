"""
auth.py
Staff accounts: bcrypt hashing, login, password changes, activation.
"""

from __future__ import annotations

import logging

import bcrypt

import db
from errors import ConflictError, NotFoundError, ValidationError
from models import STAFF_ROLES

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    Truncate explicitly instead of letting newer bcrypt releases raise ValueError.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def validate_new_password(new_password: str, confirm: str | None = None) -> list[str]:
    errors: list[str] = []
    if len(new_password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if confirm is not None and new_password != confirm:
        errors.append("Passwords do not match.")
    return errors


def get_staff_by_username(username: str):
    return db.fetch_one("SELECT * FROM admin_users WHERE username = ?", (username,))


def login(username: str, password: str):
    """Returns the staff row on success, None on bad credentials or a deactivated account."""
    staff = get_staff_by_username(username)
    if not staff or not verify_password(password, staff["password_hash"]):
        logger.info("Failed login for %r", username)
        return None
    if not staff["is_active"]:
        logger.info("Login refused for deactivated account %r", username)
        return None
    return staff


def change_password(username: str, new_password: str) -> None:
    errors = validate_new_password(new_password)
    if errors:
        raise ValidationError(errors)
    changed = db.execute_rowcount(
        "UPDATE admin_users SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    if not changed:
        raise NotFoundError("Account not found.")
    db.clear_force_password_change()
    logger.info("Password changed for %r", username)


def create_staff(username: str, password: str, full_name: str, role: str = "staff") -> int:
    errors = validate_new_password(password)
    if not username.strip():
        errors.append("Username is required.")
    if role not in STAFF_ROLES:
        errors.append(f"Role must be one of: {', '.join(STAFF_ROLES)}.")
    if errors:
        raise ValidationError(errors)
    try:
        staff_id = db.execute(
            "INSERT INTO admin_users(username, full_name, password_hash, role, created_at) VALUES(?,?,?,?,?)",
            (username.strip(), full_name.strip(), hash_password(password), role, db.now_iso()),
        )
    except ConflictError:
        raise ConflictError("Username already exists.") from None
    logger.info("Created staff account %r (%s)", username.strip(), role)
    return staff_id


def list_staff():
    return db.fetch_all(
        "SELECT id, username, full_name, role, is_active, created_at FROM admin_users ORDER BY username ASC"
    )


def set_staff_active(username: str, is_active: bool) -> None:
    changed = db.execute_rowcount(
        "UPDATE admin_users SET is_active = ? WHERE username = ?", (1 if is_active else 0, username)
    )
    if not changed:
        raise NotFoundError("Account not found.")
    logger.info("Staff %r is_active=%s", username, is_active)
