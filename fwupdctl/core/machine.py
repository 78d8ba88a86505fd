"""Protocol state machine driving one firmware session.

`dispatch` is the single entry point: every transport event is fed through it
together with the session, and it answers with the actions the controller has
to perform, in order. Apart from reading the next firmware chunk it does no
I/O, so the whole transition table can be exercised without a BLE stack.
"""

from __future__ import annotations

import logging

from fwupdctl.core.commands import encode_command
from fwupdctl.core.errors import ControlError, DeviceRejectedError, FileAccessError, FwupdError
from fwupdctl.core.model import (
    Action,
    ChannelReady,
    Command,
    CommandKind,
    Echo,
    Event,
    ExitCode,
    Finalize,
    MachineState,
    Notification,
    Response,
    Session,
    TransferState,
    TransportFailed,
    WriteAcknowledged,
    WriteChunk,
    WriteCommand,
)
from fwupdctl.core.responses import classify_response, is_complete_line

LOGGER = logging.getLogger(__name__)

RESET_OK_STATUS = ">! OK"


def dispatch(session: Session, event: Event) -> list[Action]:
    if session.state == MachineState.FINISHED:
        LOGGER.debug("Ignoring %s after session finished", type(event).__name__)
        return []

    if isinstance(event, TransportFailed):
        return _on_transport_failed(session, event.error)
    if isinstance(event, ChannelReady):
        return _on_channel_ready(session)
    if isinstance(event, WriteAcknowledged):
        return _on_write_acknowledged(session, event)
    if isinstance(event, Notification):
        return _on_notification(session, event.data)
    raise TypeError(f"Unsupported event {event!r}")


def _start_command(session: Session, command: Command) -> list[Action]:
    payload = encode_command(command)
    session.command = command
    session.command_sent = False
    session.state = MachineState.AWAITING_RESPONSE
    return [Echo(f"=> {payload.decode('ascii')}"), WriteCommand(payload)]


def _finish(session: Session, code: ExitCode, status: str | None = None) -> list[Action]:
    session.state = MachineState.FINISHED
    return [Finalize(code, status)]


def _fail(session: Session, error: FwupdError) -> list[Action]:
    status = error.status
    if status is None and isinstance(error, FileAccessError):
        status = str(error)
    return _finish(session, error.exit_code, status)


def _on_channel_ready(session: Session) -> list[Action]:
    if session.state != MachineState.AWAITING_CHANNEL:
        LOGGER.debug("Channel ready signalled twice, ignoring")
        return []
    return _start_command(session, session.command)


def _on_transport_failed(session: Session, error: FwupdError) -> list[Action]:
    # A device that was told to reset drops the link while rebooting.
    if (
        isinstance(error, ControlError)
        and not isinstance(error, DeviceRejectedError)
        and session.command.kind == CommandKind.RESET
        and session.command_sent
    ):
        LOGGER.debug("Link lost after reset was sent: %s", error)
        return _finish(session, ExitCode.OK, RESET_OK_STATUS)

    LOGGER.debug("Transport failure: %s", error)
    return _fail(session, error)


def _on_write_acknowledged(session: Session, event: WriteAcknowledged) -> list[Action]:
    if not event.chunk:
        session.command_sent = True
        return []
    if session.transfer_state != TransferState.SENDING:
        LOGGER.debug("Chunk acknowledged outside a transfer, ignoring")
        return []
    return _send_next_chunk(session)


def _on_notification(session: Session, data: bytes) -> list[Action]:
    if not is_complete_line(data):
        LOGGER.debug("Discarding partial notification %r", data)
        return []
    if session.state != MachineState.AWAITING_RESPONSE:
        LOGGER.debug("Notification %r before any command was sent, ignoring", data)
        return []

    response = classify_response(data)
    actions: list[Action] = []
    if response.kind.success and _last_chunk_unacknowledged(session):
        # The device confirmed the image before the final write ack came back.
        session.source.close()
        actions.append(Echo(">> SENT:100%\r"))
    prefix = "\n" if session.transfer_state == TransferState.SENDING else ""
    actions.append(Echo(f"{prefix}<= {response.text}"))

    if response.kind.is_control and not response.kind.success:
        session.transfer_state = TransferState.IDLE
        rejected = DeviceRejectedError(
            f"Device answered {response.kind.value} to {session.command.kind.name}"
        )
        return actions + _fail(session, rejected)

    actions.extend(_on_response(session, response))
    return actions


def _on_response(session: Session, response: Response) -> list[Action]:
    kind = session.command.kind

    if kind == CommandKind.GET_RAM:
        if response.kind.is_control:
            return _finish(session, ExitCode.OK)
        return _start_command(session, Command.get_version())

    if kind == CommandKind.GET_VERSION:
        return _finish(session, ExitCode.OK)

    if not response.kind.success:
        # Informational line while updating or resetting.
        return []

    if kind == CommandKind.RESET:
        return _finish(session, ExitCode.OK)

    if session.transfer_state == TransferState.IDLE:
        session.transfer_state = TransferState.SENDING
        return _send_next_chunk(session)

    if not session.drained:
        LOGGER.warning(
            "Device answered %s with %d of %d bytes still unsent, ignoring",
            response.kind.value,
            session.total_bytes - session.bytes_sent,
            session.total_bytes,
        )
        return []

    session.transfer_state = TransferState.IDLE
    return _start_command(session, Command.reset())


def _last_chunk_unacknowledged(session: Session) -> bool:
    return (
        session.transfer_state == TransferState.SENDING
        and session.drained
        and session.source is not None
        and not session.source.closed
    )


def _send_next_chunk(session: Session) -> list[Action]:
    if session.source is None:
        raise RuntimeError("Update session has no chunk source")

    try:
        chunk = session.source.next_chunk(session.bytes_sent)
    except FileAccessError as exc:
        return _fail(session, exc)

    if chunk is None:
        # Stay in SENDING until the device confirms the image.
        return [Echo(">> SENT:100%\r")]

    progress = session.bytes_sent * 100 // session.total_bytes
    session.bytes_sent += len(chunk)
    return [Echo(f">> SENT:{progress}%\r"), WriteChunk(chunk)]
