"""Inbound notification handling."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from pulsettoctl.core.listener import SessionListener, notify
from pulsettoctl.core.model import DeviceStatus
from pulsettoctl.core.protocol import StatusEvent, UnrecognizedEvent, decode_chunk, decode_line

LOGGER = logging.getLogger(__name__)


class NotificationDispatcher:
    """Drains one link subscription and folds each line into a DeviceStatus."""

    def __init__(self, listener: SessionListener) -> None:
        self.listener = listener
        self.status = DeviceStatus()

    def handle_chunk(self, chunk: bytes | bytearray) -> None:
        line = decode_chunk(chunk)
        LOGGER.debug("Received: %r", line)
        event = decode_line(line)
        if isinstance(event, UnrecognizedEvent):
            LOGGER.debug("Ignoring unrecognized notification %r", event.raw)
            return
        self._apply(event)

    def _apply(self, event: StatusEvent) -> None:
        self.status = self.status.with_field(event.field, event.value)
        notify(self.listener, "device_status_changed", event.field, event.value)

    async def run(self, chunks: AsyncIterator[bytes]) -> None:
        async for chunk in chunks:
            self.handle_chunk(chunk)
        LOGGER.warning("Notification stream ended; the device link is probably gone")
