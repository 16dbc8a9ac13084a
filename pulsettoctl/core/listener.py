"""Listener interface for front ends observing a device session."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pulsettoctl.core.model import ConnectionState, StatusField

LOGGER = logging.getLogger(__name__)


class SessionListener:
    """Receives session notifications. Override only what you need."""

    def connection_state_changed(self, state: ConnectionState) -> None:
        pass

    def device_status_changed(self, field: StatusField, value: str) -> None:
        pass

    def session_elapsed_changed(self, minutes: int, seconds: int) -> None:
        pass

    def session_started(self) -> None:
        pass

    def session_stopped(self) -> None:
        pass

    def error(self, kind: str, message: str) -> None:
        pass


def notify(listener: SessionListener, method: str, *args: object) -> None:
    """Invoke a listener callback, logging rather than propagating its failures."""
    callback: Callable[..., None] = getattr(listener, method)
    try:
        callback(*args)
    except Exception:
        LOGGER.exception("Listener %s.%s failed", type(listener).__name__, method)
