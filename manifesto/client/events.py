"""Synchronous auth notification hub"""

from collections import defaultdict
from typing import Any, Callable, Dict, List
import logging

logger = logging.getLogger(__name__)

AUTH_STATE_CHANGED = "auth_state_changed"
LOGIN_SUCCESS = "login_success"
SIGNUP_SUCCESS = "signup_success"
LOGOUT = "logout"
TOKEN_REFRESHED = "token_refreshed"
AUTH_READY = "auth_ready"

Listener = Callable[[Dict[str, Any]], None]


class AuthEvents:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe; the returned callable unsubscribes"""
        self._listeners[event].append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def emit(self, event: str, **payload: Any) -> None:
        # A failing listener must not stop the others
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for {event} failed")
