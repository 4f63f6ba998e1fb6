from __future__ import annotations
import secrets
import time
from typing import Callable, Optional
from cachetools import TTLCache

from storefront.state import ViewState

SESSION_COOKIE = "storefront_session"
THEME_COOKIE = "theme"


class SessionRegistry:
    """View state per browser session, kept in process memory."""

    def __init__(self, maxsize: int = 10000, ttl: float = 1800,
                 timer: Callable[[], float] = time.monotonic) -> None:
        self._states: TTLCache[str, ViewState] = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def new_id(self) -> str:
        return secrets.token_urlsafe(16)

    def get(self, session_id: Optional[str]) -> Optional[ViewState]:
        if not session_id:
            return None
        state = self._states.get(session_id)
        if state is not None:
            # Reading counts as activity
            self._states[session_id] = state
        return state

    def put(self, session_id: str, state: ViewState) -> None:
        self._states[session_id] = state

    def __len__(self) -> int:
        self._states.expire()
        return len(self._states)
