"""Cooperative cancellation for long-running detection passes."""

from __future__ import annotations

import threading
from typing import Optional

from .exceptions import DetectionCancelledError


class CancellationToken:
    """Thread-safe flag checked by detectors once per traversal root."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "") -> None:
        self.reason = reason or None
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise DetectionCancelledError(context={"reason": self.reason} if self.reason else None)


def check_cancelled(token: Optional[CancellationToken]) -> None:
    if token is not None:
        token.raise_if_cancelled()
