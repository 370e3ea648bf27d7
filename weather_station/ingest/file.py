import logging
from typing import IO, Optional

from .base import SampleSource

logger = logging.getLogger(__name__)


class FileSource(SampleSource):
    """Replays payloads from a JSON lines file, one per poll."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.exhausted = False
        self._file: Optional[IO[str]] = None

    def connect(self) -> None:
        self._file = open(self.path, 'r', encoding='utf-8')
        logger.info(f"FileSource reading payloads from {self.path}")

    def poll(self, timeout_s: float) -> Optional[str]:
        if self._file is None:
            raise RuntimeError("FileSource.poll() called before connect()")

        for line in self._file:
            line = line.strip()
            if line:
                return line

        self.exhausted = True
        return None

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info("FileSource closed.")
