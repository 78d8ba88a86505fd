"""Sequential chunked reads of a firmware image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from fwupdctl.core.errors import FileAccessError
from fwupdctl.core.model import MAX_IMAGE_SIZE

CHUNK_SIZE = 512
LOGGER = logging.getLogger(__name__)


class ChunkSource:
    """Hands out consecutive slices of a length-known byte stream.

    The stream is closed as soon as the last byte has been handed out.
    """

    def __init__(self, stream: BinaryIO, total: int, *, chunk_size: int = CHUNK_SIZE) -> None:
        if not 0 < chunk_size <= CHUNK_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {CHUNK_SIZE}")
        if total < 0:
            raise ValueError("total must not be negative")
        self._stream = stream
        self.total = total
        self.chunk_size = chunk_size
        self._position = 0
        self._closed = False

    @classmethod
    def open(cls, path: Path, *, chunk_size: int = CHUNK_SIZE) -> ChunkSource:
        try:
            stream = path.open("rb")
        except OSError as exc:
            raise FileAccessError(f"Could not open file: {path}") from exc

        try:
            total = path.stat().st_size
        except OSError as exc:
            stream.close()
            raise FileAccessError(f"Could not open file: {path}") from exc

        if total > MAX_IMAGE_SIZE:
            stream.close()
            raise FileAccessError(f"Firmware image {path} exceeds {MAX_IMAGE_SIZE} bytes")

        LOGGER.debug("Opened firmware image %s (%d bytes)", path, total)
        return cls(stream, total, chunk_size=chunk_size)

    @property
    def position(self) -> int:
        return self._position

    @property
    def closed(self) -> bool:
        return self._closed

    def next_chunk(self, done: int) -> bytes | None:
        """Return the slice starting at `done`, or None once everything was read."""
        if done != self._position:
            raise ValueError(f"Chunk offset {done} does not match read position {self._position}")
        if done >= self.total:
            self.close()
            return None

        length = min(self.chunk_size, self.total - done)
        try:
            data = self._stream.read(length)
        except OSError as exc:
            self.close()
            raise FileAccessError(f"Firmware image read failed at offset {done}: {exc}") from exc
        if len(data) != length:
            self.close()
            raise FileAccessError(
                f"Firmware image ended at offset {done + len(data)}, expected {self.total} bytes"
            )

        self._position += length
        return data

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream.close()

    def __enter__(self) -> ChunkSource:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
