"""Wire encoding of protocol commands."""

from __future__ import annotations

from fwupdctl.core.model import Command, CommandKind

LINE_END = b"\r\n"

_FIXED_COMMANDS = {
    CommandKind.GET_RAM: b"FW+RAM?",
    CommandKind.GET_VERSION: b"FW+VER?",
    CommandKind.RESET: b"FW+RST!",
}


def encode_command(command: Command) -> bytes:
    """Render a command as the CR-LF terminated ASCII line written to the device."""
    if command.kind == CommandKind.UPDATE:
        if command.image_size is None:
            raise ValueError("Update command requires an image size")
        return b"FW+UPD:%d" % command.image_size + LINE_END
    return _FIXED_COMMANDS[command.kind] + LINE_END
