"""Device session state machine.

A session owns one link to one device. It moves through
IDLE -> CONNECTING -> READY <-> SESSION_ACTIVE and back to IDLE only on an
explicit disconnect. Three background timers hang off it: the status poll
(lifetime of the connection), the elapsed-time tick (lifetime of one
stimulation session) and the preset auto-stop (one preset-driven session).

Local mode/intensity are updated optimistically before the write is sent;
the protocol has no acknowledgement. Every write goes through one lock so
user intents, pacing bursts and timer ticks never overlap on the link.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import replace

from pulsettoctl.core.dispatcher import NotificationDispatcher
from pulsettoctl.core.errors import (
    AlreadyActiveError,
    CommandError,
    DeviceConnectionError,
    InvalidStateError,
    PulsettoError,
    WriteError,
)
from pulsettoctl.core.listener import SessionListener, notify
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
    coerce_mode,
    reconcile_mode,
)
from pulsettoctl.core.protocol import (
    encode_end_session,
    encode_query_firmware,
    encode_query_info,
    encode_query_status,
    encode_set_intensity,
    encode_set_mode,
)
from pulsettoctl.transports.base import Link, Transport

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class DeviceSession:
    def __init__(
        self,
        transport: Transport,
        *,
        listener: SessionListener | None = None,
        link_spec: LinkSpec | None = None,
        timing: SessionTiming | None = None,
        controls: Controls | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.listener = listener or SessionListener()
        self.link_spec = link_spec or LinkSpec()
        self.timing = timing or SessionTiming()
        self.controls = controls or Controls()
        self.connection_state = ConnectionState.DISCONNECTED
        self.session = SessionState()
        self._clock = clock
        self._sleep = sleep
        self._dispatcher = NotificationDispatcher(self.listener)
        self._link: Link | None = None
        self._write_lock = asyncio.Lock()
        self._dispatch_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._elapsed_task: asyncio.Task[None] | None = None
        self._auto_stop_task: asyncio.Task[None] | None = None

    @property
    def phase(self) -> SessionPhase:
        if self.connection_state is ConnectionState.CONNECTING:
            return SessionPhase.CONNECTING
        if self.connection_state is ConnectionState.DISCONNECTED:
            return SessionPhase.IDLE
        if self.session.active:
            return SessionPhase.SESSION_ACTIVE
        return SessionPhase.READY

    @property
    def status(self) -> DeviceStatus:
        return self._dispatcher.status

    @property
    def reconciled_mode(self) -> Mode | None:
        return reconcile_mode(self.controls.mode, self.status)

    @property
    def is_connected(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED

    async def connect(self) -> None:
        if self.connection_state is not ConnectionState.DISCONNECTED:
            raise self._reported(InvalidStateError("Already connected or connecting"))

        self._set_connection_state(ConnectionState.CONNECTING)
        link: Link | None = None
        try:
            link = await self.transport.discover_and_connect(self.link_spec)
            chunks = link.subscribe()
        except Exception as exc:
            if link is not None:
                await _close_link(link)
            if self.connection_state is not ConnectionState.DISCONNECTED:
                self._set_connection_state(ConnectionState.DISCONNECTED)
            if isinstance(exc, DeviceConnectionError):
                raise self._reported(exc)
            raise self._reported(DeviceConnectionError(f"Failed to connect: {exc}")) from exc

        if self.connection_state is not ConnectionState.CONNECTING:
            LOGGER.info("Disconnected while connecting; dropping the new link")
            await _close_link(link)
            return

        self._link = link
        self._dispatcher = NotificationDispatcher(self.listener)
        self._dispatch_task = asyncio.create_task(self._drain_notifications(chunks))
        self._set_connection_state(ConnectionState.CONNECTED)

        await self._send_burst(
            [encode_query_info(), encode_query_firmware(), encode_query_status()],
            current=lambda: self._link is link,
        )
        if self._link is not link:
            return
        self._poll_task = asyncio.create_task(
            self._run_ticker("status poll", self.timing.status_poll_s, self._poll_status)
        )

    async def disconnect(self) -> None:
        tasks = [
            task
            for task in (self._auto_stop_task, self._elapsed_task, self._poll_task, self._dispatch_task)
            if task is not None and task is not asyncio.current_task()
        ]
        self._auto_stop_task = self._elapsed_task = self._poll_task = self._dispatch_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        was_active = self.session.active
        self.session = SessionState()
        link, self._link = self._link, None
        if link is not None:
            await _close_link(link)
        if was_active:
            notify(self.listener, "session_elapsed_changed", 0, 0)
            notify(self.listener, "session_stopped")
        if self.connection_state is not ConnectionState.DISCONNECTED:
            self._set_connection_state(ConnectionState.DISCONNECTED)

    async def set_mode(self, mode: Mode | str) -> None:
        self._require_connected("change mode")
        try:
            resolved = coerce_mode(mode)
        except CommandError as exc:
            raise self._reported(exc) from None
        self._apply_controls(mode=resolved)
        await self._send(encode_set_mode(resolved))

    async def set_intensity(self, level: int) -> None:
        self._require_connected("change intensity")
        try:
            payload = encode_set_intensity(level)
        except CommandError as exc:
            raise self._reported(exc) from None
        self._apply_controls(intensity=level)
        await self._send(payload)

    async def start_session(self) -> SessionState:
        """Start stimulating with the current controls.

        Returns the new ``SessionState``. Compare it by identity against
        ``self.session`` to tell whether this particular session is still
        the one running.
        """
        self._require_connected("start a session")
        if self.session.active:
            raise self._reported(AlreadyActiveError("A session is already active"))
        mode = self.controls.mode
        if mode is None:
            raise self._reported(InvalidStateError("Select a mode before starting a session"))

        state = SessionState(active=True, start_time=self._clock())
        self.session = state
        LOGGER.info("Session started (mode=%s, intensity=%d)", mode.label, self.controls.intensity)
        notify(self.listener, "session_started")
        self._elapsed_task = asyncio.create_task(
            self._run_ticker("elapsed", self.timing.elapsed_tick_s, self._tick_elapsed)
        )

        payloads = [encode_set_mode(mode)]
        if self.controls.intensity > 0:
            payloads.append(encode_set_intensity(self.controls.intensity))
        await self._send_burst(payloads, current=lambda: self.session is state)
        return state

    async def stop_session(self) -> None:
        if not self.session.active:
            LOGGER.debug("No active session to stop")
            return

        _cancel(self._elapsed_task)
        self._elapsed_task = None
        _cancel(self._auto_stop_task)
        self._auto_stop_task = None
        self.session = SessionState()
        LOGGER.info("Session stopped")
        notify(self.listener, "session_elapsed_changed", 0, 0)
        notify(self.listener, "session_stopped")
        await self._send(encode_end_session())

    async def load_preset(self, preset: Preset) -> None:
        self._require_connected("load a preset")
        if self.session.active:
            raise self._reported(AlreadyActiveError("Stop the running session before loading a preset"))

        self._apply_controls(mode=preset.mode, intensity=preset.intensity)
        state = await self.start_session()
        if self.session is not state:
            LOGGER.info("Preset '%s' was stopped while starting; no auto-stop scheduled", preset.name)
            return
        self._auto_stop_task = asyncio.create_task(self._auto_stop(preset, state))

    def elapsed(self) -> tuple[int, int]:
        if self.session.start_time is None:
            return 0, 0
        total = max(int(self._clock() - self.session.start_time), 0)
        minutes, seconds = divmod(total, 60)
        return minutes, seconds

    def _apply_controls(self, *, mode: Mode | None = None, intensity: int | None = None) -> None:
        changes: dict[str, object] = {}
        if mode is not None:
            changes["mode"] = mode
        if intensity is not None:
            changes["intensity"] = intensity
        self.controls = replace(self.controls, **changes)

    def _require_connected(self, action: str) -> None:
        if not self.is_connected:
            raise self._reported(InvalidStateError(f"Cannot {action} while not connected"))

    def _set_connection_state(self, state: ConnectionState) -> None:
        LOGGER.info("Connection state: %s -> %s", self.connection_state.value, state.value)
        self.connection_state = state
        notify(self.listener, "connection_state_changed", state)

    def _reported(self, error: PulsettoError) -> PulsettoError:
        LOGGER.warning("%s", error)
        notify(self.listener, "error", error.kind, str(error))
        return error

    async def _send(self, payload: bytes) -> bool:
        """Write one command. Failures are reported, not raised."""
        link = self._link
        if link is None:
            self._reported(WriteError(f"Cannot send {payload!r}: no link"))
            return False
        async with self._write_lock:
            LOGGER.debug("Sending: %r", payload)
            try:
                await link.write(payload)
            except Exception as exc:
                error = exc if isinstance(exc, WriteError) else WriteError(f"Write failed: {exc}")
                self._reported(error)
                return False
        return True

    async def _send_burst(self, payloads: list[bytes], *, current: Callable[[], bool]) -> None:
        """Write ``payloads`` with pacing; abandon the rest once ``current()`` turns false."""
        for index, payload in enumerate(payloads):
            if index and self.timing.pacing_delay_s > 0:
                await self._sleep(self.timing.pacing_delay_s)
            if not current():
                LOGGER.debug("Dropping %d queued command(s); their session is over", len(payloads) - index)
                return
            await self._send(payload)

    async def _drain_notifications(self, chunks: AsyncIterator[bytes]) -> None:
        try:
            await self._dispatcher.run(chunks)
        except Exception as exc:
            LOGGER.exception("Notification stream failed")
            notify(self.listener, "error", "transport", f"Notification stream failed: {exc}")

    async def _run_ticker(self, name: str, period_s: float, action: Callable[[], Awaitable[None]]) -> None:
        while True:
            await self._sleep(period_s)
            try:
                await action()
            except Exception as exc:
                LOGGER.exception("%s tick failed", name)
                notify(self.listener, "error", getattr(exc, "kind", "error"), str(exc))

    async def _poll_status(self) -> None:
        await self._send(encode_query_status())

    async def _tick_elapsed(self) -> None:
        minutes, seconds = self.elapsed()
        notify(self.listener, "session_elapsed_changed", minutes, seconds)

    async def _auto_stop(self, preset: Preset, state: SessionState) -> None:
        await self._sleep(preset.duration_s)
        if self.session is not state:
            return
        LOGGER.info("Preset '%s' reached %d minutes; stopping", preset.name, preset.duration_minutes)
        self._auto_stop_task = None
        await self.stop_session()


def _cancel(task: asyncio.Task[None] | None) -> None:
    if task is not None and task is not asyncio.current_task():
        task.cancel()


async def _close_link(link: Link) -> None:
    try:
        await link.disconnect()
    except Exception as exc:
        LOGGER.warning("Error while closing link: %s", exc)
