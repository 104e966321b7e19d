"""Identity lifecycle notifications.

Observers are told when the identity manager starts authenticating and how
the attempt ended. An observer that raises is logged and skipped.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .telemetry import get_logger

if TYPE_CHECKING:
    from .models import AccessTokenResponse


class IdentityEventType(StrEnum):
    """Kinds of identity lifecycle events."""

    WILL_AUTHENTICATE = "will_authenticate"
    DID_AUTHENTICATE = "did_authenticate"
    DID_FAIL_TO_AUTHENTICATE = "did_fail_to_authenticate"


@dataclass(frozen=True)
class IdentityEvent:
    """A lifecycle event. ``token`` is set on success, ``error`` on failure."""

    type: IdentityEventType
    token: AccessTokenResponse | None = None
    error: BaseException | None = None


IdentityObserver = Callable[[IdentityEvent], None]


class IdentityEvents:
    """Registry of lifecycle observers."""

    def __init__(self) -> None:
        self._observers: list[IdentityObserver] = []
        self._lock = threading.Lock()
        self._logger = get_logger()

    def subscribe(self, observer: IdentityObserver) -> Callable[[], None]:
        """Register an observer.

        Returns:
            A callable that unsubscribes the observer.
        """
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def emit(self, event: IdentityEvent) -> None:
        """Deliver an event to every observer, in subscription order."""
        with self._lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(event)
            except Exception as e:
                self._logger.warning(
                    "Identity observer failed",
                    event_type=event.type.value,
                    error=repr(e),
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
