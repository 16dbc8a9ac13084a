"""Transport interfaces."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from pulsettoctl.core.model import LinkSpec


class Link(Protocol):
    async def write(self, payload: bytes) -> None:
        """Write one encoded command to the device."""

    def subscribe(self) -> AsyncIterator[bytes]:
        """Return inbound notification chunks until the link goes away."""

    async def disconnect(self) -> None:
        """Close the link. Safe to call more than once."""


class Transport(Protocol):
    async def discover_and_connect(self, spec: LinkSpec) -> Link:
        """Find a matching device, connect, and start notifications."""
