"""
packages.py
Package catalog: purchasable membership templates.
"""

from __future__ import annotations

import logging

import db
import utils
from errors import ConflictError, NotFoundError, ValidationError
from models import Package

logger = logging.getLogger(__name__)


def create_package(package_name: str, duration_days, price, description: str | None = None,
                   is_active: bool = True) -> Package:
    errors = utils.validate_package_inputs(package_name, duration_days, price)
    if errors:
        raise ValidationError(errors)
    package_id = db.execute(
        """
        INSERT INTO membership_packages(package_name, description, duration_days, price, is_active, created_at)
        VALUES(?,?,?,?,?,?)
        """,
        (package_name.strip(), (description or "").strip() or None, int(float(duration_days)), float(price),
         1 if is_active else 0, db.now_iso()),
    )
    logger.info("Created package %s (%s)", package_name.strip(), package_id)
    return get_package(package_id)


def update_package(package_id: int, package_name: str, duration_days, price,
                   description: str | None = None, is_active: bool = True) -> Package:
    """Existing memberships keep their own dates and price_paid snapshot."""
    errors = utils.validate_package_inputs(package_name, duration_days, price)
    if errors:
        raise ValidationError(errors)
    changed = db.execute_rowcount(
        """
        UPDATE membership_packages
        SET package_name=?, description=?, duration_days=?, price=?, is_active=?
        WHERE id=?
        """,
        (package_name.strip(), (description or "").strip() or None, int(float(duration_days)), float(price),
         1 if is_active else 0, package_id),
    )
    if not changed:
        raise NotFoundError("Package not found.")
    logger.info("Updated package %s", package_id)
    return get_package(package_id)


def get_package(package_id: int) -> Package:
    row = db.fetch_one("SELECT * FROM membership_packages WHERE id = ?", (package_id,))
    if not row:
        raise NotFoundError("Package not found.")
    return Package.from_row(row)


def list_packages(active_only: bool = True) -> list[Package]:
    sql = "SELECT * FROM membership_packages"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY duration_days ASC, id ASC"
    return [Package.from_row(r) for r in db.fetch_all(sql)]


def delete_package(package_id: int) -> None:
    """Blocked while an active membership still references the package."""
    in_use = db.fetch_one(
        "SELECT COUNT(*) AS c FROM member_memberships WHERE package_id = ? AND status = 'active'",
        (package_id,),
    )["c"]
    if in_use:
        raise ConflictError("Cannot delete a package that is still used by an active membership.")
    changed = db.execute_rowcount("DELETE FROM membership_packages WHERE id = ?", (package_id,))
    if not changed:
        raise NotFoundError("Package not found.")
    logger.info("Deleted package %s", package_id)
