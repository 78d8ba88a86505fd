"""Session controller: runs the protocol machine against a transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from fwupdctl.core import machine
from fwupdctl.core.errors import ControlError, FwupdError
from fwupdctl.core.model import (
    Action,
    ChannelReady,
    DeviceProfile,
    Echo,
    Event,
    ExitCode,
    Finalize,
    MachineState,
    Notification,
    Session,
    TransferState,
    TransportFailed,
    WriteAcknowledged,
    WriteChunk,
    WriteCommand,
)
from fwupdctl.transports.base import GattTransport

LOGGER = logging.getLogger(__name__)

EchoFn = Callable[[str], None]


class SessionController:
    """Owns one `Session` for the duration of a run.

    Transport callbacks only enqueue events; every event is dispatched from
    `run()` on the same loop, one at a time, so the session needs no locking.
    """

    def __init__(
        self,
        session: Session,
        transport: GattTransport,
        profile: DeviceProfile,
        *,
        echo: EchoFn,
    ) -> None:
        self.session = session
        self.transport = transport
        self.profile = profile
        self._echo = echo
        self._events: asyncio.Queue[Event] = asyncio.Queue()

    async def run(self) -> ExitCode:
        try:
            await self.transport.discover(
                self.session.address,
                timeout_s=self.profile.discovery_timeout_s,
            )
            await self.transport.connect()
            await self.transport.open_channel(
                service_uuid=self.profile.service_uuid,
                char_uuid=self.profile.char_uuid,
                on_notify=self._on_notify,
                on_disconnect=self._on_disconnect,
            )
        except FwupdError as exc:
            await self._handle(TransportFailed(exc))
        else:
            await self._handle(ChannelReady())

        while not self.session.finished:
            await self._handle(await self._events.get())

        return ExitCode(self.session.result)

    async def finalize(self, code: ExitCode, status: str | None = None) -> None:
        if self.session.finished:
            LOGGER.debug("Session already finalized with %s, ignoring %s", self.session.result, code)
            return
        self.session.result = code
        self.session.state = MachineState.FINISHED

        if self.session.transfer_state == TransferState.SENDING:
            self._echo("\n")
        if status:
            self._echo(f"{status}\n")
        if self.session.source is not None:
            self.session.source.close()

        LOGGER.debug("Session finished with %s", code.name)
        await self.transport.disconnect()

    def _on_notify(self, data: bytes) -> None:
        self._events.put_nowait(Notification(data))

    def _on_disconnect(self) -> None:
        self._events.put_nowait(TransportFailed(ControlError("Device disconnected")))

    async def _handle(self, event: Event) -> None:
        for action in machine.dispatch(self.session, event):
            await self._perform(action)

    async def _perform(self, action: Action) -> None:
        if isinstance(action, Echo):
            self._echo(action.text)
        elif isinstance(action, WriteCommand):
            await self._write(action.payload, self.profile.command_write_with_response, chunk=False)
        elif isinstance(action, WriteChunk):
            await self._write(action.payload, self.profile.data_write_with_response, chunk=True)
        elif isinstance(action, Finalize):
            await self.finalize(action.code, action.status)
        else:
            raise TypeError(f"Unsupported action {action!r}")

    async def _write(self, payload: bytes, response: bool, *, chunk: bool) -> None:
        try:
            await self.transport.write(payload, response=response)
        except FwupdError as exc:
            self._events.put_nowait(TransportFailed(exc))
        else:
            self._events.put_nowait(WriteAcknowledged(chunk=chunk))
