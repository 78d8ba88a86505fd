"""Service layer used by CLI and API frontends."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from pathlib import Path

from fwupdctl.core.chunks import ChunkSource
from fwupdctl.core.errors import ArgumentError
from fwupdctl.core.model import Command, DeviceProfile, ExitCode, Session
from fwupdctl.core.profile_loader import load_profiles
from fwupdctl.core.session import EchoFn, SessionController
from fwupdctl.transports.base import GattTransport
from fwupdctl.transports.ble_gatt import BLEGATTTransport

_MAC_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$", re.IGNORECASE)
_UUID_ADDRESS_RE = re.compile(
    r"^[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}$", re.IGNORECASE
)
LOGGER = logging.getLogger(__name__)


def _discard(_: str) -> None:
    pass


class FirmwareService:
    def __init__(
        self,
        *,
        profile_id: str | None = None,
        transport_factory: Callable[[], GattTransport] | None = None,
        echo: EchoFn | None = None,
    ) -> None:
        loaded = load_profiles()
        self.profiles = loaded.profiles
        self.load_warnings = loaded.warnings
        self.profile: DeviceProfile = loaded.get(profile_id)
        self.transport_factory = transport_factory or BLEGATTTransport
        self.echo = echo or _discard

    def get_info(self, address: str) -> ExitCode:
        return self._run(Session(address=normalize_address(address), command=Command.get_info()))

    def reset(self, address: str) -> ExitCode:
        return self._run(Session(address=normalize_address(address), command=Command.reset()))

    def update(self, address: str, firmware: Path) -> ExitCode:
        address = normalize_address(address)
        source = ChunkSource.open(firmware, chunk_size=self.profile.chunk_size)
        LOGGER.info("Updating %s with %s (%d bytes)", address, firmware, source.total)
        session = Session(
            address=address,
            command=Command.update(source.total),
            source=source,
            total_bytes=source.total,
        )
        try:
            return self._run(session)
        finally:
            source.close()

    def _run(self, session: Session) -> ExitCode:
        controller = SessionController(
            session,
            self.transport_factory(),
            self.profile,
            echo=self.echo,
        )
        return asyncio.run(controller.run())


def normalize_address(address: str) -> str:
    candidate = address.strip()
    if _MAC_RE.match(candidate):
        return candidate.upper()
    if _UUID_ADDRESS_RE.match(candidate):
        return candidate.upper()
    raise ArgumentError(
        f"Invalid device address '{address}'. Expected XX:XX:XX:XX:XX:XX or a platform UUID."
    )
