"""Line codec for the Pulsetto text protocol.

Outbound commands are a short token followed by a newline. Inbound
notifications share one characteristic and carry no framing or type tag,
so they are classified purely by prefix/substring, first match wins. Any
line may arrive at any time; nothing here pairs a response with the
command that triggered it.
"""

from __future__ import annotations

from dataclasses import dataclass

from pulsettoctl.core.errors import CommandError
from pulsettoctl.core.model import Mode, StatusField

WIRE_ENCODING = "latin-1"
TERMINATOR = "\n"

QUERY_INFO = "i"
QUERY_FIRMWARE = "v"
QUERY_STATUS = "Q"
END_SESSION = "-"

_NAME_PREFIX = "Pulsetto_"
_FIRMWARE_PREFIX = "fw:"
_BATTERY_MARKER = "Batt:"
_MODE_MARKER = "mode:"

_MODE_LABELS = {mode.value: mode.label for mode in Mode}


@dataclass(frozen=True)
class StatusEvent:
    field: StatusField
    value: str


@dataclass(frozen=True)
class DeviceNameEvent(StatusEvent):
    pass


@dataclass(frozen=True)
class FirmwareEvent(StatusEvent):
    pass


@dataclass(frozen=True)
class BatteryEvent(StatusEvent):
    pass


@dataclass(frozen=True)
class ModeEvent(StatusEvent):
    pass


@dataclass(frozen=True)
class UnrecognizedEvent:
    raw: str


InboundEvent = DeviceNameEvent | FirmwareEvent | BatteryEvent | ModeEvent | UnrecognizedEvent


def _frame(token: str) -> bytes:
    return (token + TERMINATOR).encode(WIRE_ENCODING)


def encode_set_mode(mode: Mode) -> bytes:
    if not isinstance(mode, Mode):
        raise CommandError(f"Mode command requires a Mode, got {mode!r}")
    return _frame(mode.value)


def encode_set_intensity(level: int) -> bytes:
    if isinstance(level, bool) or not isinstance(level, int):
        raise CommandError(f"Intensity must be an integer, got {level!r}")
    if level < 0:
        raise CommandError(f"Intensity must not be negative, got {level}")
    return _frame(str(level))


def encode_query_info() -> bytes:
    return _frame(QUERY_INFO)


def encode_query_firmware() -> bytes:
    return _frame(QUERY_FIRMWARE)


def encode_query_status() -> bytes:
    return _frame(QUERY_STATUS)


def encode_end_session() -> bytes:
    return _frame(END_SESSION)


def decode_chunk(chunk: bytes | bytearray) -> str:
    return bytes(chunk).decode(WIRE_ENCODING)


def mode_label(code: str) -> str:
    """Map a reported mode code to its display label; unknown codes pass through."""
    return _MODE_LABELS.get(code, code)


def decode_line(line: str) -> InboundEvent:
    if line.startswith(_NAME_PREFIX):
        return DeviceNameEvent(StatusField.DEVICE_NAME, line.strip())
    if line.startswith(_FIRMWARE_PREFIX):
        return FirmwareEvent(StatusField.FIRMWARE_VERSION, line.strip())
    if _BATTERY_MARKER in line:
        return BatteryEvent(StatusField.BATTERY_VOLTAGE, line.split(_BATTERY_MARKER, 1)[1].strip())
    if _MODE_MARKER in line:
        code = line.split(_MODE_MARKER, 1)[1].strip()
        return ModeEvent(StatusField.MODE, mode_label(code))
    return UnrecognizedEvent(line)


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"
