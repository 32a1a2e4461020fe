"""
sample_data.py
Demo rows for a fresh database (adds new rows on every run).
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

import checkins
import memberships
import members
import packages
import payments
import utils

logger = logging.getLogger(__name__)


def insert_sample_data(created_by: str | None = None) -> None:
    today = utils.today()

    monthly = packages.create_package("Monthly", 30, 300000, "Unlimited gym access for 30 days")
    quarterly = packages.create_package("Quarterly", 90, 800000, "Unlimited gym access for 90 days")
    packages.create_package("Daily Pass", 1, 25000, "Single-day visit")

    ahmad = members.create_member("Ahmad Hidayat", "081234567801", gender="male", created_by=created_by)
    siti = members.create_member("Siti Rahma", "081234567802", gender="female",
                                 email="siti@example.com", created_by=created_by)
    budi = members.create_member("Budi Santoso", "081234567803", gender="male", created_by=created_by)

    # Ahmad: monthly plan that ends in 5 days
    memberships.create_membership(ahmad.id, monthly.id, created_by=created_by, as_of=today - timedelta(days=25))
    # Siti: fresh quarterly plan paid by transfer
    memberships.create_membership(siti.id, quarterly.id, payment_method="bank_transfer",
                                  created_by=created_by, as_of=today)
    # Budi: lapsed monthly plan
    memberships.create_membership(budi.id, monthly.id, created_by=created_by, as_of=today - timedelta(days=60))
    memberships.expire_lapsed_memberships(today)

    payments.record_payment(budi.id, 25000, "qris", notes="Drop-in visit", received_by=created_by)

    visit = checkins.check_in(ahmad.id, now=datetime.combine(today, time(7, 30)))
    checkins.check_out(visit.id, now=datetime.combine(today, time(9, 0)))
    checkins.check_in(siti.id, now=datetime.combine(today, time(8, 15)))
    logger.info("Inserted sample data")
