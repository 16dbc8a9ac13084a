"""Service layer used by the CLI and other front ends."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pulsettoctl.core.config import Settings, load_settings
from pulsettoctl.core.errors import CommandError, PresetValidationError
from pulsettoctl.core.listener import SessionListener, notify
from pulsettoctl.core.model import ConnectionState, DeviceStatus, Mode, Preset, StatusField, coerce_mode
from pulsettoctl.core.presets import PresetStore
from pulsettoctl.core.session import DeviceSession, Sleep
from pulsettoctl.transports.base import Transport
from pulsettoctl.transports.ble_gatt import BLEGATTTransport

LOGGER = logging.getLogger(__name__)


class _StopSignal(SessionListener):
    """Forwards to another listener and flags when the session stops."""

    def __init__(self, inner: SessionListener) -> None:
        self.inner = inner
        self.stopped = asyncio.Event()

    def connection_state_changed(self, state: ConnectionState) -> None:
        notify(self.inner, "connection_state_changed", state)

    def device_status_changed(self, field: StatusField, value: str) -> None:
        notify(self.inner, "device_status_changed", field, value)

    def session_elapsed_changed(self, minutes: int, seconds: int) -> None:
        notify(self.inner, "session_elapsed_changed", minutes, seconds)

    def session_started(self) -> None:
        self.stopped.clear()
        notify(self.inner, "session_started")

    def session_stopped(self) -> None:
        self.stopped.set()
        notify(self.inner, "session_stopped")

    def error(self, kind: str, message: str) -> None:
        notify(self.inner, "error", kind, message)


class PulsettoService:
    def __init__(
        self,
        *,
        transport: Transport | None = None,
        settings: Settings | None = None,
        config_path: Path | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or load_settings(config_path)
        self.transport = transport or BLEGATTTransport()
        self.preset_store = PresetStore(self.settings.presets_path)
        self.preset_store.load()
        self._sleep = sleep

    def list_presets(self) -> list[Preset]:
        return list(self.preset_store.presets)

    def get_preset(self, index: int) -> Preset:
        return self.preset_store.get(index)

    def save_preset(self, name: str, mode: Mode | str, intensity: int, duration_minutes: int) -> Preset:
        try:
            resolved = coerce_mode(mode)
        except CommandError as exc:
            raise PresetValidationError(str(exc)) from exc
        preset = Preset(
            name=name.strip(),
            mode=resolved,
            intensity=intensity,
            duration_minutes=duration_minutes,
        )
        self.preset_store.add(preset)
        LOGGER.info("Saved preset '%s'", preset.name)
        return preset

    def delete_preset(self, index: int) -> Preset:
        removed = self.preset_store.delete(index)
        LOGGER.info("Deleted preset '%s'", removed.name)
        return removed

    def open_session(self, listener: SessionListener | None = None) -> DeviceSession:
        return DeviceSession(
            self.transport,
            listener=listener,
            link_spec=self.settings.link,
            timing=self.settings.timing,
            controls=self.settings.controls,
            sleep=self._sleep,
        )

    async def read_status(self, listener: SessionListener | None = None, *, wait_s: float = 4.0) -> DeviceStatus:
        """Connect, let the query burst and first poll come back, then disconnect."""
        session = self.open_session(listener)
        await session.connect()
        try:
            await self._sleep(wait_s)
            return session.status
        finally:
            await session.disconnect()

    async def run_preset(self, preset: Preset, listener: SessionListener | None = None) -> None:
        """Run one timed session and return once it stops, by timer or cancellation."""
        signal = _StopSignal(listener or SessionListener())
        session = self.open_session(signal)
        await session.connect()
        try:
            await session.load_preset(preset)
            await signal.stopped.wait()
        finally:
            await session.stop_session()
            await session.disconnect()
