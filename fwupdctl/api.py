"""Stable public API for building tooling on top of fwupdctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from fwupdctl.core.errors import (
    ArgumentError,
    ConfigError,
    ControlError,
    DeviceRejectedError,
    DiscoveryError,
    FileAccessError,
    FwupdError,
    ProfileLoadError,
    ProfileValidationError,
    ServiceError,
)
from fwupdctl.core.model import Command, CommandKind, DeviceProfile, ExitCode, ResponseKind
from fwupdctl.core.service import FirmwareService
from fwupdctl.core.session import EchoFn
from fwupdctl.transports.base import GattTransport
from fwupdctl.transports.ble_gatt import BLEGATTTransport

__all__ = [
    "FwupdError",
    "ConfigError",
    "ProfileLoadError",
    "ProfileValidationError",
    "ArgumentError",
    "FileAccessError",
    "DiscoveryError",
    "ControlError",
    "DeviceRejectedError",
    "ServiceError",
    "Command",
    "CommandKind",
    "DeviceProfile",
    "ExitCode",
    "ResponseKind",
    "GattTransport",
    "BLEGATTTransport",
    "Client",
]


class Client:
    """Public client for running firmware sessions.

    A `Client` instance wraps profile loading and the BLE session behind a
    stable API intended for third-party tools (GUI/TUI/services/scripts).
    Each call opens its own connection and returns the process-style exit code.
    """

    def __init__(
        self,
        *,
        profile_id: str | None = None,
        transport_factory: Callable[[], GattTransport] | None = None,
        echo: EchoFn | None = None,
    ) -> None:
        self._service = FirmwareService(
            profile_id=profile_id,
            transport_factory=transport_factory,
            echo=echo,
        )

    @property
    def profile(self) -> DeviceProfile:
        return self._service.profile

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_profiles(self) -> list[DeviceProfile]:
        return sorted(self._service.profiles.values(), key=lambda p: p.id)

    def get_info(self, address: str) -> ExitCode:
        return self._service.get_info(address)

    def update(self, address: str, firmware: Path | str) -> ExitCode:
        return self._service.update(address, Path(firmware))

    def reset(self, address: str) -> ExitCode:
        return self._service.reset(address)
