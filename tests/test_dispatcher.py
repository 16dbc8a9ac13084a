from __future__ import annotations

import pytest
from conftest import RecordingListener

from pulsettoctl.core.dispatcher import NotificationDispatcher
from pulsettoctl.core.model import DeviceStatus, Mode, StatusField


async def _chunks(*lines: str):
    for line in lines:
        yield line.encode("latin-1")


def test_each_field_updates_independently() -> None:
    listener = RecordingListener()
    dispatcher = NotificationDispatcher(listener)

    dispatcher.handle_chunk(b"Batt: 3.91")
    assert dispatcher.status == DeviceStatus(battery_voltage="3.91")

    dispatcher.handle_chunk(b"mode:C\r\n")
    assert dispatcher.status.battery_voltage == "3.91"
    assert dispatcher.status.mode == "RIGHT"
    assert dispatcher.status.reported_mode is Mode.RIGHT
    assert listener.events == [
        ("status", StatusField.BATTERY_VOLTAGE, "3.91"),
        ("status", StatusField.MODE, "RIGHT"),
    ]


def test_unknown_mode_code_has_no_reported_mode() -> None:
    dispatcher = NotificationDispatcher(RecordingListener())
    dispatcher.handle_chunk(b"mode:X")
    assert dispatcher.status.mode == "X"
    assert dispatcher.status.reported_mode is None


def test_unrecognized_lines_are_dropped() -> None:
    listener = RecordingListener()
    dispatcher = NotificationDispatcher(listener)

    dispatcher.handle_chunk(b"ERR 42")

    assert dispatcher.status == DeviceStatus()
    assert listener.events == []


def test_listener_failure_does_not_break_dispatch() -> None:
    class Broken(RecordingListener):
        def device_status_changed(self, field, value):
            raise RuntimeError("render failed")

    dispatcher = NotificationDispatcher(Broken())
    dispatcher.handle_chunk(b"Pulsetto_A1B2")
    dispatcher.handle_chunk(b"fw:1.4")

    assert dispatcher.status.device_name == "Pulsetto_A1B2"
    assert dispatcher.status.firmware_version == "fw:1.4"


@pytest.mark.asyncio
async def test_run_drains_stream_until_it_ends() -> None:
    listener = RecordingListener()
    dispatcher = NotificationDispatcher(listener)

    await dispatcher.run(_chunks("Pulsetto_A1B2", "fw:2.0.7", "hello", "Batt:4.02", "mode:0"))

    assert len(listener.of("status")) == 4
    assert dispatcher.status == DeviceStatus(
        device_name="Pulsetto_A1B2",
        firmware_version="fw:2.0.7",
        battery_voltage="4.02",
        mode="OFF",
        reported_mode=Mode.OFF,
    )
