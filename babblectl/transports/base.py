"""Transport interfaces."""

from __future__ import annotations

from typing import Callable, Protocol


class LineTransport(Protocol):
    def write_line(self, text: str) -> None:
        """Write one line of text to the device."""

    def read_line(self, timeout: float) -> str:
        """Return the next line, raising TransportTimeoutError if none arrives in time."""

    def close(self) -> None:
        """Release the underlying port. Safe to call more than once."""


TransportFactory = Callable[[str], LineTransport]
