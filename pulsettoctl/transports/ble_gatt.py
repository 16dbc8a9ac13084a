"""BLE GATT transport implementation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from pulsettoctl.core.device_match import advertised_name, name_matches_prefix
from pulsettoctl.core.errors import DeviceConnectionError, TransportError, WriteError
from pulsettoctl.core.model import LinkSpec

LOGGER = logging.getLogger(__name__)


class BLEGATTLink:
    """A connected peripheral exposing one write and one notify characteristic."""

    def __init__(self, spec: LinkSpec) -> None:
        self.spec = spec
        self.address: str | None = None
        self._client: Any = None
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._subscribed = False
        self._closed = False

    def _attach(self, client: Any, address: str) -> None:
        self._client = client
        self.address = address

    def _on_notify(self, _: Any, data: bytearray) -> None:
        if self._closed:
            return
        self._queue.put_nowait(bytes(data))

    def _on_disconnect(self, _: Any) -> None:
        LOGGER.info("Peripheral %s disconnected", self.address)
        self._queue.put_nowait(None)

    async def write(self, payload: bytes) -> None:
        if self._client is None or self._closed:
            raise WriteError("BLE link is not connected")
        try:
            await self._client.write_gatt_char(
                self.spec.write_char_uuid,
                payload,
                response=self.spec.write_with_response,
            )
        except Exception as exc:
            raise WriteError(f"BLE write failed: {exc}") from exc

    def subscribe(self) -> AsyncIterator[bytes]:
        if self._subscribed:
            raise TransportError("Notification stream can only be consumed once per connection")
        self._subscribed = True
        return self._drain()

    async def _drain(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._client is None:
            return
        try:
            await self._client.stop_notify(self.spec.notify_char_uuid)
        except Exception as exc:
            LOGGER.debug("stop_notify failed during disconnect: %s", exc)
        try:
            await self._client.disconnect()
        finally:
            self._queue.put_nowait(None)


class BLEGATTTransport:
    async def discover_and_connect(self, spec: LinkSpec) -> BLEGATTLink:
        try:
            from bleak import BleakClient, BleakScanner  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise DeviceConnectionError(
                "BLE transport requires 'bleak'. Install dependency and retry."
            ) from exc

        def _match(device: Any, adv: Any) -> bool:
            name = advertised_name(device.name, getattr(adv, "local_name", None))
            return name_matches_prefix(name, spec.name_prefix)

        LOGGER.info("Scanning for devices named '%s*'", spec.name_prefix)
        try:
            device = await BleakScanner.find_device_by_filter(_match, timeout=spec.scan_timeout_s)
        except Exception as exc:
            raise DeviceConnectionError(f"BLE scan failed: {exc}") from exc
        if device is None:
            raise DeviceConnectionError(
                f"No device advertising a name starting with '{spec.name_prefix}' was found"
            )

        link = BLEGATTLink(spec)
        client = BleakClient(
            device,
            timeout=spec.connect_timeout_s,
            disconnected_callback=link._on_disconnect,
        )
        LOGGER.info("Connecting to %s (%s)", device.address, device.name)
        try:
            await client.connect()
            service = client.services.get_service(spec.service_uuid)
            if service is None:
                raise DeviceConnectionError(f"Service {spec.service_uuid} not found on {device.address}")
            for uuid in (spec.write_char_uuid, spec.notify_char_uuid):
                if service.get_characteristic(uuid) is None:
                    raise DeviceConnectionError(f"Characteristic {uuid} not found on {device.address}")
            await client.start_notify(spec.notify_char_uuid, link._on_notify)
        except DeviceConnectionError:
            await _close_quietly(client)
            raise
        except Exception as exc:
            await _close_quietly(client)
            raise DeviceConnectionError(f"BLE connect failed for {device.address}: {exc}") from exc

        link._attach(client, device.address)
        return link


async def _close_quietly(client: Any) -> None:
    try:
        await client.disconnect()
    except Exception as exc:
        LOGGER.debug("Disconnect after failed connect raised: %s", exc)
