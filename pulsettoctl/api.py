"""Stable public API for building tooling on top of pulsettoctl.

This module is the supported integration surface for third-party callers
(GUIs, services, scripts). Avoid importing from internal modules unless you
intentionally depend on non-stable internals.
"""

from __future__ import annotations

from pulsettoctl.core.config import Settings, load_settings
from pulsettoctl.core.errors import (
    AlreadyActiveError,
    CommandError,
    ConfigError,
    DeviceConnectionError,
    InvalidStateError,
    PresetStoreError,
    PresetValidationError,
    PulsettoError,
    TransportError,
    WriteError,
)
from pulsettoctl.core.listener import SessionListener
from pulsettoctl.core.model import (
    ConnectionState,
    Controls,
    DeviceStatus,
    LinkSpec,
    Mode,
    Preset,
    SessionPhase,
    SessionState,
    SessionTiming,
    StatusField,
)
from pulsettoctl.core.protocol import format_elapsed
from pulsettoctl.core.service import PulsettoService
from pulsettoctl.core.session import DeviceSession
from pulsettoctl.transports.base import Link, Transport
from pulsettoctl.transports.ble_gatt import BLEGATTTransport

__all__ = [
    "PulsettoError",
    "TransportError",
    "DeviceConnectionError",
    "WriteError",
    "InvalidStateError",
    "AlreadyActiveError",
    "CommandError",
    "PresetValidationError",
    "PresetStoreError",
    "ConfigError",
    "ConnectionState",
    "Controls",
    "DeviceStatus",
    "LinkSpec",
    "Mode",
    "Preset",
    "SessionPhase",
    "SessionState",
    "SessionTiming",
    "StatusField",
    "Settings",
    "load_settings",
    "SessionListener",
    "DeviceSession",
    "PulsettoService",
    "Link",
    "Transport",
    "BLEGATTTransport",
    "format_elapsed",
]
