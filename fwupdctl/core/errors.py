"""Domain-specific errors for fwupdctl."""

from __future__ import annotations

from fwupdctl.core.model import ExitCode


class FwupdError(Exception):
    """Base error for fwupdctl."""

    exit_code: ExitCode = ExitCode.CONTROL
    status: str | None = None


class ConfigError(FwupdError):
    """Base configuration error."""

    exit_code = ExitCode.CONFIG


class ProfileValidationError(ConfigError):
    """Raised when a profile file does not conform to schema or semantics."""


class ProfileLoadError(ConfigError):
    """Raised when loading or selecting a profile fails."""


class ArgumentError(FwupdError):
    """Raised on a malformed invocation."""

    exit_code = ExitCode.ARGUMENT


class FileAccessError(FwupdError):
    """Raised when the firmware image cannot be read."""

    exit_code = ExitCode.FILE


class DiscoveryError(FwupdError):
    """Raised when the target is not found or the scanner faults."""

    exit_code = ExitCode.DISCOVERY
    status = ">? ERROR"


class ControlError(FwupdError):
    """Raised on connection drops and controller faults."""

    exit_code = ExitCode.CONTROL
    status = ">! ERROR"


class DeviceRejectedError(ControlError):
    """Raised when the device answers FAIL or ERROR."""


class ServiceError(FwupdError):
    """Raised on GATT service, characteristic or descriptor faults."""

    exit_code = ExitCode.SERVICE
    status = ">+ ERROR"
