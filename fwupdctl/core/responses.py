"""Classification of notification lines received from the device."""

from __future__ import annotations

from fwupdctl.core.model import Response, ResponseKind

LINE_END = b"\r\n"

# Scanned in order, first prefix match wins.
CONTROL_RESPONSES: tuple[tuple[bytes, ResponseKind], ...] = (
    (b"OK\r\n", ResponseKind.OK),
    (b"DONE\r\n", ResponseKind.DONE),
    (b"FAIL\r\n", ResponseKind.FAIL),
    (b"ERROR\r\n", ResponseKind.ERROR),
)


def is_complete_line(data: bytes) -> bool:
    return LINE_END in data


def classify_response(line: bytes) -> Response:
    """Label a complete line as one of the control responses or opaque payload.

    Matching is a case-sensitive prefix test, so informational text that starts
    with a control token is read as that control response.
    """
    if not is_complete_line(line):
        raise ValueError("Response line is missing its CR-LF terminator")
    for prefix, kind in CONTROL_RESPONSES:
        if line.startswith(prefix):
            return Response(kind=kind, line=line)
    return Response(kind=ResponseKind.OPAQUE, line=line)
