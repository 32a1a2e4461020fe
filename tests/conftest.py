from __future__ import annotations

from datetime import date

import pytest

import config
import db
import members
import memberships
import packages


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DB_FILE", tmp_path / "gym.db")
    monkeypatch.setattr(config, "RETRY_BACKOFF", 0.0)
    db.init_db("not-a-real-hash")
    return tmp_path / "gym.db"


@pytest.fixture
def member():
    return members.create_member("Ahmad Hidayat", "081234567801")


@pytest.fixture
def other_member():
    return members.create_member("Siti Rahma", "081234567802")


@pytest.fixture
def package():
    return packages.create_package("Monthly", 30, 300000)


@pytest.fixture
def active_member(member, package):
    memberships.create_membership(member.id, package.id, as_of=date.today())
    return member
