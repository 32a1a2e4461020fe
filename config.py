"""
config.py
Runtime settings. Every value can be overridden through an environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

# Row store
DB_FILE = Path(os.environ.get("GYM_DB_FILE", BASE_DIR / "gym.db"))
DB_TIMEOUT = float(os.environ.get("GYM_DB_TIMEOUT", "5"))
READ_RETRIES = int(os.environ.get("GYM_READ_RETRIES", "2"))
RETRY_BACKOFF = float(os.environ.get("GYM_RETRY_BACKOFF", "0.2"))

# Invoice header
GYM_NAME = os.environ.get("GYM_NAME", "IHSAN SPORT CENTER")
GYM_ADDRESS = os.environ.get("GYM_ADDRESS", "Jl. Wonosalam, Sukoharjo, Ngaglik, Sleman, D.I. Yogyakarta 55581")
GYM_PHONE = os.environ.get("GYM_PHONE", "0851-9125-8786")
CURRENCY = os.environ.get("GYM_CURRENCY", "IDR")

EXPIRING_DAYS = int(os.environ.get("GYM_EXPIRING_DAYS", "7"))
PAGE_SIZE = int(os.environ.get("GYM_PAGE_SIZE", "50"))
LOG_LEVEL = os.environ.get("GYM_LOG_LEVEL", "INFO")

# Default staff account created on first run
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"
