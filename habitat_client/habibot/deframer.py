"""
Deframer - Splits the Elko byte stream into JSON frames.

Each frame is a JSON object followed by a blank line. Bytes outside a
frame are dropped.
"""

import logging
from typing import Optional

from .constants import FRAME_START, LF

logger = logging.getLogger(__name__)


class Deframer:
    """Incremental frame extractor; state carries across feed() calls."""

    def __init__(self):
        self._buffer = bytearray()
        self._framed = False
        self._first_eol = False

    @property
    def in_frame(self) -> bool:
        return self._framed

    def reset(self) -> None:
        """Discard any partially received frame."""
        self._buffer = bytearray()
        self._framed = False
        self._first_eol = False

    def feed(self, data: bytes) -> list[bytes]:
        """Consume a chunk of bytes and return the frames it completes."""
        frames = []

        for byte in data:
            if self._framed:
                self._buffer.append(byte)
                if byte == LF:
                    if not self._first_eol:
                        self._first_eol = True
                    else:
                        frames.append(bytes(self._buffer))
                        self.reset()
            elif byte == FRAME_START:
                self._framed = True
                self._first_eol = False
                self._buffer = bytearray([byte])
            elif byte != LF:
                logger.debug(f"IGNORED: {byte}")

        return frames

    def flush(self) -> Optional[bytes]:
        """
        Emit whatever is left of an unterminated frame.

        Called when the stream ends. The result is usually truncated JSON;
        callers treat it as best-effort.
        """
        if not self._framed:
            return None
        frame = bytes(self._buffer)
        logger.warning(f"Flushing unterminated frame ({len(frame)} bytes)")
        self.reset()
        return frame
