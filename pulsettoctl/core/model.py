"""Core data models used across the session, dispatcher, store, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from pulsettoctl.core.errors import CommandError, PresetValidationError

SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
WRITE_CHAR_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
NOTIFY_CHAR_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
DEVICE_NAME_PREFIX = "Pulsetto"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SessionPhase(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    SESSION_ACTIVE = "session_active"


class Mode(Enum):
    """Stimulation side(s); the value is the single wire character."""

    OFF = "0"
    LEFT = "A"
    RIGHT = "C"
    BOTH = "D"

    @property
    def label(self) -> str:
        return self.name


class StatusField(Enum):
    DEVICE_NAME = "device_name"
    FIRMWARE_VERSION = "firmware_version"
    BATTERY_VOLTAGE = "battery_voltage"
    MODE = "mode"


def coerce_mode(value: Mode | str) -> Mode:
    """Accept a Mode, its wire character, or its label (case-insensitive)."""
    if isinstance(value, Mode):
        return value
    text = str(value).strip()
    try:
        return Mode(text.upper())
    except ValueError:
        pass
    try:
        return Mode[text.upper()]
    except KeyError:
        allowed = ", ".join(f"{m.value}/{m.label}" for m in Mode)
        raise CommandError(f"Unknown mode '{value}'. Allowed: {allowed}") from None


@dataclass(frozen=True)
class LinkSpec:
    service_uuid: str = SERVICE_UUID
    write_char_uuid: str = WRITE_CHAR_UUID
    notify_char_uuid: str = NOTIFY_CHAR_UUID
    name_prefix: str = DEVICE_NAME_PREFIX
    connect_timeout_s: float = 10.0
    scan_timeout_s: float = 10.0
    write_with_response: bool = True


@dataclass(frozen=True)
class SessionTiming:
    pacing_delay_s: float = 0.1
    status_poll_s: float = 3.0
    elapsed_tick_s: float = 1.0


@dataclass(frozen=True)
class Controls:
    mode: Mode | None = Mode.BOTH
    intensity: int = 5


@dataclass(frozen=True)
class SessionState:
    active: bool = False
    start_time: float | None = None

    def __post_init__(self) -> None:
        if self.active != (self.start_time is not None):
            raise ValueError("start_time must be set if and only if the session is active")


@dataclass(frozen=True)
class DeviceStatus:
    """Last-known device report. Fields are updated independently."""

    device_name: str | None = None
    firmware_version: str | None = None
    battery_voltage: str | None = None
    mode: str | None = None
    reported_mode: Mode | None = None

    def with_field(self, field: StatusField, value: str) -> DeviceStatus:
        if field is StatusField.MODE:
            reported = next((m for m in Mode if m.label == value), None)
            return replace(self, mode=value, reported_mode=reported)
        return replace(self, **{field.value: value})


@dataclass(frozen=True)
class Preset:
    name: str
    mode: Mode
    intensity: int
    duration_minutes: int

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise PresetValidationError("Preset name must not be empty")
        if not isinstance(self.mode, Mode):
            raise PresetValidationError(f"Preset mode must be a Mode, got {self.mode!r}")
        if isinstance(self.intensity, bool) or not isinstance(self.intensity, int) or self.intensity < 0:
            raise PresetValidationError(f"Preset intensity must be a non-negative integer, got {self.intensity!r}")
        if (
            isinstance(self.duration_minutes, bool)
            or not isinstance(self.duration_minutes, int)
            or self.duration_minutes <= 0
        ):
            raise PresetValidationError(
                f"Preset duration must be a positive number of minutes, got {self.duration_minutes!r}"
            )

    @property
    def duration_s(self) -> int:
        return self.duration_minutes * 60


def reconcile_mode(optimistic: Mode | None, status: DeviceStatus) -> Mode | None:
    """Prefer the mode the device last confirmed over the locally assumed one."""
    if status.reported_mode is not None:
        return status.reported_mode
    return optimistic
