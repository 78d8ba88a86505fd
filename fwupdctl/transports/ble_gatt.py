"""BLE GATT transport implementation."""

from __future__ import annotations

import asyncio
import logging

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError
from bleak.uuids import normalize_uuid_str

from fwupdctl.core.errors import ControlError, DiscoveryError, ServiceError
from fwupdctl.transports.base import DisconnectCallback, NotifyCallback

LOGGER = logging.getLogger(__name__)


class BLEGATTTransport:
    def __init__(self) -> None:
        self._device: BLEDevice | None = None
        self._client: BleakClient | None = None
        self._characteristic: BleakGATTCharacteristic | None = None
        self._on_disconnect: DisconnectCallback | None = None
        self._closing = False

    async def discover(self, address: str, *, timeout_s: float) -> None:
        LOGGER.debug("Scanning for %s (timeout %.1fs)", address, timeout_s)
        try:
            device = await BleakScanner.find_device_by_address(address, timeout=timeout_s)
        except (BleakError, OSError) as exc:
            raise DiscoveryError(f"BLE discovery failed: {exc}") from exc
        if device is None:
            raise DiscoveryError(f"Device {address} not found within {timeout_s:.1f}s")
        self._device = device

    async def connect(self) -> None:
        if self._device is None:
            raise ControlError("connect() called before discover()")
        self._client = BleakClient(self._device, disconnected_callback=self._handle_disconnect)
        LOGGER.debug("Connecting to %s", self._device.address)
        try:
            await self._client.connect()
        except (BleakError, OSError, asyncio.TimeoutError) as exc:
            raise ControlError(f"BLE connect failed for {self._device.address}: {exc}") from exc
        if not self._client.is_connected:
            raise ControlError(f"BLE connect failed for {self._device.address}")

    async def open_channel(
        self,
        *,
        service_uuid: str,
        char_uuid: str,
        on_notify: NotifyCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        if self._client is None:
            raise ServiceError("open_channel() called before connect()")
        self._on_disconnect = on_disconnect

        try:
            service = self._client.services.get_service(normalize_uuid_str(service_uuid))
        except BleakError as exc:
            raise self._gatt_error(f"Service lookup for {service_uuid} failed: {exc}") from exc
        if service is None:
            raise ServiceError(f"Service {service_uuid} not found on device")
        characteristic = service.get_characteristic(normalize_uuid_str(char_uuid))
        if characteristic is None:
            raise ServiceError(f"Characteristic {char_uuid} not found in service {service_uuid}")

        def _notify_handler(_: BleakGATTCharacteristic, data: bytearray) -> None:
            on_notify(bytes(data))

        try:
            await self._client.start_notify(characteristic, _notify_handler)
        except (BleakError, OSError) as exc:
            raise self._gatt_error(f"Enabling notifications on {char_uuid} failed: {exc}") from exc
        # A drop before the callback was registered would otherwise go unseen.
        if not self._client.is_connected:
            raise ControlError("Device disconnected while opening the channel")
        self._characteristic = characteristic

    async def write(self, payload: bytes, *, response: bool) -> None:
        if self._client is None or self._characteristic is None:
            raise ServiceError("write() called before open_channel()")
        try:
            await self._client.write_gatt_char(self._characteristic, payload, response=response)
        except (BleakError, OSError) as exc:
            raise self._gatt_error(f"BLE GATT write failed: {exc}") from exc

    async def disconnect(self) -> None:
        self._closing = True
        if self._client is None:
            return
        try:
            await self._client.disconnect()
        except (BleakError, OSError) as exc:
            LOGGER.debug("Disconnect failed: %s", exc)

    def _handle_disconnect(self, _: BleakClient) -> None:
        if self._closing or self._on_disconnect is None:
            return
        LOGGER.debug("Device disconnected")
        self._on_disconnect()

    def _gatt_error(self, message: str) -> ControlError | ServiceError:
        if self._client is None or not self._client.is_connected:
            return ControlError(f"Link lost: {message}")
        return ServiceError(message)
