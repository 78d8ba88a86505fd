"""Core data models used across the protocol machine, controller, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from fwupdctl.core.chunks import ChunkSource
    from fwupdctl.core.errors import FwupdError

MAX_IMAGE_SIZE = 2**32 - 1


class ExitCode(IntEnum):
    OK = 0
    CONFIG = 1
    ARGUMENT = 2
    FILE = 3
    DISCOVERY = 4
    CONTROL = 5
    SERVICE = 6


class CommandKind(IntEnum):
    """Command ordinals, used to tell apart the responses they receive."""

    UPDATE = 0
    RESET = 1
    GET_RAM = 2
    GET_VERSION = 3


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    image_size: int | None = None

    @classmethod
    def get_info(cls) -> Command:
        return cls(CommandKind.GET_RAM)

    @classmethod
    def get_version(cls) -> Command:
        return cls(CommandKind.GET_VERSION)

    @classmethod
    def update(cls, image_size: int) -> Command:
        return cls(CommandKind.UPDATE, image_size)

    @classmethod
    def reset(cls) -> Command:
        return cls(CommandKind.RESET)


class ResponseKind(Enum):
    OK = "OK"
    DONE = "DONE"
    FAIL = "FAIL"
    ERROR = "ERROR"
    OPAQUE = "OPAQUE"

    @property
    def is_control(self) -> bool:
        return self is not ResponseKind.OPAQUE

    @property
    def success(self) -> bool:
        return self in (ResponseKind.OK, ResponseKind.DONE)


@dataclass(frozen=True)
class Response:
    kind: ResponseKind
    line: bytes

    @property
    def text(self) -> str:
        return self.line.decode("utf-8", errors="replace")


class TransferState(Enum):
    IDLE = "idle"
    SENDING = "sending"


class MachineState(Enum):
    AWAITING_CHANNEL = "awaiting_channel"
    AWAITING_RESPONSE = "awaiting_response"
    FINISHED = "finished"


@dataclass
class Session:
    """Mutable state of one run against one device.

    `result` is the terminal latch: None while pending, set exactly once.
    """

    address: str
    command: Command
    source: ChunkSource | None = None
    state: MachineState = MachineState.AWAITING_CHANNEL
    transfer_state: TransferState = TransferState.IDLE
    bytes_sent: int = 0
    total_bytes: int = 0
    command_sent: bool = False
    result: ExitCode | None = None

    @property
    def finished(self) -> bool:
        return self.result is not None

    @property
    def drained(self) -> bool:
        return self.bytes_sent == self.total_bytes


# Events delivered by the transport to the machine.


@dataclass(frozen=True)
class ChannelReady:
    pass


@dataclass(frozen=True)
class Notification:
    data: bytes


@dataclass(frozen=True)
class WriteAcknowledged:
    chunk: bool = False


@dataclass(frozen=True)
class TransportFailed:
    error: FwupdError


Event = Union[ChannelReady, Notification, WriteAcknowledged, TransportFailed]


# Actions requested by the machine from the controller.


@dataclass(frozen=True)
class WriteCommand:
    payload: bytes


@dataclass(frozen=True)
class WriteChunk:
    payload: bytes


@dataclass(frozen=True)
class Echo:
    text: str


@dataclass(frozen=True)
class Finalize:
    code: ExitCode
    status: str | None = None


Action = Union[WriteCommand, WriteChunk, Echo, Finalize]


@dataclass(frozen=True)
class DeviceProfile:
    id: str
    name: str
    service_uuid: str
    char_uuid: str
    chunk_size: int = 512
    discovery_timeout_s: float = 5.0
    command_write_with_response: bool = False
    data_write_with_response: bool = True
