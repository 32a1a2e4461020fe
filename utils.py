"""
utils.py
Validation, dates, formatting.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

import config

MAX_DURATION_DAYS = 36500

PHONE_RE = re.compile(r"^(\+62|62|0)[8-9][0-9]{7,11}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def today() -> date:
    return date.today()


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def calculate_age(date_of_birth: date, as_of: date | None = None) -> int:
    as_of = as_of or date.today()
    age = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(re.sub(r"\s", "", phone)))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def to_number(value) -> float | None:
    """float(value), or None when it is not a finite number ("inf", "nan", "1e400")."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return num


def validate_member_inputs(full_name: str, phone: str, email: str | None = None, gender: str | None = None) -> list[str]:
    errors: list[str] = []
    if not (full_name or "").strip():
        errors.append("Full name is required.")
    if not (phone or "").strip():
        errors.append("Phone is required.")
    elif not is_valid_phone(phone):
        errors.append("Phone must be a valid mobile number (e.g. 081234567890).")
    if email and email.strip() and not is_valid_email(email.strip()):
        errors.append("Email address is not valid.")
    if gender and gender not in ("male", "female"):
        errors.append("Gender must be male or female.")
    return errors


def validate_package_inputs(package_name: str, duration_days, price) -> list[str]:
    errors: list[str] = []
    if not (package_name or "").strip():
        errors.append("Package name is required.")
    days = to_number(duration_days)
    if days is None or not days.is_integer():
        errors.append("Duration must be a whole number of days.")
    elif days <= 0:
        errors.append("Duration must be more than 0 days.")
    elif days > MAX_DURATION_DAYS:
        errors.append(f"Duration must be at most {MAX_DURATION_DAYS} days.")
    num = to_number(price)
    if num is None:
        errors.append("Price must be numeric.")
    elif num <= 0:
        errors.append("Price must be more than 0.")
    return errors


def validate_amount(amount) -> list[str]:
    num = to_number(amount)
    if num is None:
        return ["Amount must be numeric."]
    if num <= 0:
        return ["Amount must be more than 0."]
    return []


def format_currency(amount) -> str:
    """300000 -> 'Rp 300.000' (whole units, dot thousands separator)."""
    num = to_number(amount)
    if num is None:
        num = 0.0
    text = f"{round(num):,}".replace(",", ".")
    if config.CURRENCY == "IDR":
        return f"Rp {text}"
    return f"{config.CURRENCY} {text}"
