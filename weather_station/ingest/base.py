from abc import ABC, abstractmethod
from typing import Optional


class SampleSource(ABC):
    """
    Base interface for payload feeds.
    poll() returns one raw payload line, or None when nothing arrived in time.
    """

    exhausted: bool = False

    @abstractmethod
    def connect(self) -> None:
        """Open the feed."""

    @abstractmethod
    def poll(self, timeout_s: float) -> Optional[str]:
        """Return the next payload, or None if there is none yet."""

    @abstractmethod
    def close(self) -> None:
        """Release the feed."""
