import os
import select
import sys
import time
import logging
from typing import Optional

from .base import SampleSource

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class StdinSource(SampleSource):
    """Reads one JSON payload per line from stdin.

    Input is read straight from the file descriptor and split here, so lines
    that arrive together are handed out one per poll without waiting for
    more input.
    """

    def __init__(self, stream=None) -> None:
        self.stream = stream or sys.stdin
        self.exhausted = False
        self._buffer = b""

    def connect(self) -> None:
        logger.info("StdinSource connected. Waiting for payload lines.")

    def _next_buffered_line(self) -> Optional[str]:
        while b"\n" in self._buffer:
            line, self._buffer = self._buffer.split(b"\n", 1)
            line = line.decode("utf-8", errors="replace").strip()
            if line:
                return line
        return None

    def poll(self, timeout_s: float) -> Optional[str]:
        line = self._next_buffered_line()
        if line is not None or self.exhausted:
            return line

        fd = self.stream.fileno()
        deadline = time.monotonic() + timeout_s

        while True:
            remaining = max(0.0, deadline - time.monotonic())
            r, _, _ = select.select([fd], [], [], remaining)
            if not r:
                return None

            chunk = os.read(fd, READ_CHUNK_SIZE)
            if not chunk:
                self.exhausted = True
                # Last line without a trailing newline
                tail, self._buffer = self._buffer, b""
                tail = tail.decode("utf-8", errors="replace").strip()
                return tail or None

            self._buffer += chunk
            line = self._next_buffered_line()
            if line is not None:
                return line

    def close(self) -> None:
        logger.info("StdinSource closed.")
