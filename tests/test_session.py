from __future__ import annotations

import pytest

import auth
import db
import session
from errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def staff():
    auth.create_staff("rina", "secret123", "Rina Putri", role="staff")
    return "rina"


def test_sign_in_and_out(staff):
    state = {}

    s = session.sign_in(state, " rina ", "secret123")

    assert s.username == "rina"
    assert s.display_name == "Rina Putri"
    assert session.current_session(state) is s
    session.sign_out(state)
    assert session.current_session(state) is None
    assert session.CACHE_KEY not in state


def test_wrong_password(staff):
    state = {}
    assert session.sign_in(state, "rina", "nope") is None
    assert session.current_session(state) is None


def test_deactivated_account_cannot_sign_in(staff):
    auth.set_staff_active("rina", False)

    assert session.sign_in({}, "rina", "secret123") is None


def test_duplicate_staff_username(staff):
    with pytest.raises(ConflictError):
        auth.create_staff("rina", "another1", "Someone")


def test_staff_validation():
    with pytest.raises(ValidationError):
        auth.create_staff("x", "123", "Short", role="janitor")


def test_change_password_clears_forced_change(staff):
    db._set_setting("force_password_change", "1")

    auth.change_password("rina", "newsecret")

    assert not db.is_force_password_change()
    assert auth.login("rina", "newsecret") is not None
    with pytest.raises(NotFoundError):
        auth.change_password("ghost", "whatever1")


def test_long_password_is_truncated_consistently():
    hashed = auth.hash_password("a" * 100)
    assert auth.verify_password("a" * 72 + "b" * 28, hashed)


def test_list_cache_loads_once_and_invalidates():
    cache = session.ListCache()
    calls = []

    def loader():
        calls.append(1)
        return [1, 2, 3]

    assert cache.get("payments", loader) == [1, 2, 3]
    assert cache.get("payments", loader) == [1, 2, 3]
    assert len(calls) == 1
    cache.invalidate("payments")
    assert "payments" not in cache
    cache.get("payments", loader)
    assert len(calls) == 2


def test_optimistic_remove_success():
    cache = session.ListCache()
    cache.get("payments", lambda: [{"id": 1}, {"id": 2}])

    session.optimistic_remove(cache, "payments", lambda r: r["id"] == 1, lambda: None)

    assert cache.get("payments", lambda: []) == [{"id": 2}]


def test_optimistic_remove_rolls_back_on_failure():
    cache = session.ListCache()
    server = [{"id": 1}, {"id": 2}]
    cache.get("payments", lambda: list(server))

    def failing_delete():
        raise NotFoundError("Payment not found.")

    with pytest.raises(NotFoundError):
        session.optimistic_remove(cache, "payments", lambda r: r["id"] == 1, failing_delete)

    assert cache.get("payments", lambda: list(server)) == server
