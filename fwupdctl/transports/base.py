"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

NotifyCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[], None]


class GattTransport(Protocol):
    async def discover(self, address: str, *, timeout_s: float) -> None:
        """Find the device advertising `address` or raise DiscoveryError."""

    async def connect(self) -> None:
        """Connect to the discovered device or raise ControlError."""

    async def open_channel(
        self,
        *,
        service_uuid: str,
        char_uuid: str,
        on_notify: NotifyCallback,
        on_disconnect: DisconnectCallback,
    ) -> None:
        """Resolve the characteristic and enable notifications or raise ServiceError."""

    async def write(self, payload: bytes, *, response: bool) -> None:
        """Write to the characteristic, returning once the write completed."""

    async def disconnect(self) -> None:
        """Drop the link if one is up."""
