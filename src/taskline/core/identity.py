# src/taskline/core/identity.py

from __future__ import annotations

import logging
from collections.abc import Callable

from .ports import IdentityListener

logger = logging.getLogger(__name__)


class SessionIdentity:
    """
    In-process identity source.

    Holds the bearer token of the logged-in user (None for guest mode) and
    notifies listeners whenever it changes.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = (token or "").strip() or None
        self._listeners: list[IdentityListener] = []

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_guest(self) -> bool:
        return self._token is None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def login(self, token: str) -> None:
        token = (token or "").strip()
        if not token:
            raise ValueError("token is required")
        self._set(token)

    def logout(self) -> None:
        self._set(None)

    def _set(self, token: str | None) -> None:
        if token == self._token:
            return
        self._token = token
        logger.info("Identity changed: %s", "guest" if token is None else "authenticated")
        for listener in list(self._listeners):
            try:
                listener(token)
            except Exception:
                logger.exception("Identity listener failed")
