"""
session.py
Explicit staff session and the per-page list cache.

Both live under fixed keys of a mapping (st.session_state in the app, a plain
dict in tests) and are passed to whatever needs them.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import auth
import utils

logger = logging.getLogger(__name__)

SESSION_KEY = "staff_session"
CACHE_KEY = "list_cache"


@dataclass(frozen=True)
class StaffSession:
    username: str
    full_name: str
    role: str
    signed_in_at: datetime

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


def sign_in(state: MutableMapping, username: str, password: str) -> StaffSession | None:
    staff = auth.login(username.strip(), password)
    if staff is None:
        return None
    session = StaffSession(
        username=staff["username"],
        full_name=staff["full_name"],
        role=staff["role"],
        signed_in_at=utils.now(),
    )
    state[SESSION_KEY] = session
    state[CACHE_KEY] = ListCache()
    logger.info("%s signed in", session.username)
    return session


def sign_out(state: MutableMapping) -> None:
    session = state.pop(SESSION_KEY, None)
    state.pop(CACHE_KEY, None)
    if session is not None:
        logger.info("%s signed out", session.username)


def current_session(state: MutableMapping) -> StaffSession | None:
    return state.get(SESSION_KEY)


def list_cache(state: MutableMapping) -> "ListCache":
    cache = state.get(CACHE_KEY)
    if cache is None:
        cache = state[CACHE_KEY] = ListCache()
    return cache


class ListCache:
    """
    Best-effort copies of lists shown on a page. Invalidate after every
    mutation. Never use for invariant checks; the store decides those.
    """

    def __init__(self):
        self._entries: dict[str, list] = {}

    def get(self, key: str, loader: Callable[[], list]) -> list:
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def invalidate(self, *keys: str) -> None:
        if not keys:
            self._entries.clear()
            return
        for key in keys:
            self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def remove(self, key: str, predicate: Callable[[object], bool]) -> list:
        """Drop matching items from a cached list; returns what was dropped."""
        entries = self._entries.get(key)
        if entries is None:
            return []
        removed = [item for item in entries if predicate(item)]
        self._entries[key] = [item for item in entries if not predicate(item)]
        return removed


def optimistic_remove(cache: ListCache, key: str, predicate: Callable[[object], bool],
                      action: Callable[[], None]) -> None:
    """
    Remove items from the cached list before `action` runs against the store.
    If the action fails the list is reloaded on next access so the page shows
    the last known-good server state, then the error propagates.
    """
    cache.remove(key, predicate)
    try:
        action()
    except Exception:
        cache.invalidate(key)
        raise
