"""Serial line transport implementation using pyserial."""

from __future__ import annotations

import threading
from typing import Any, Callable

import serial
import serial.tools.list_ports

from babblectl.core.errors import (
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)

DEFAULT_BAUD_RATE = 115200


def list_serial_ports() -> list[str]:
    # some platforms report the same port more than once
    devices = (port.device for port in serial.tools.list_ports.comports())
    return sorted(dict.fromkeys(devices))


class SerialLineTransport:
    def __init__(
        self,
        port: str,
        *,
        baud_rate: int = DEFAULT_BAUD_RATE,
        write_timeout_s: float = 1.0,
        serial_factory: Callable[..., Any] = serial.Serial,
    ) -> None:
        self.port = port
        self._pending = b""
        self._closed = False
        self._close_lock = threading.Lock()
        try:
            self._serial = serial_factory(
                port,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=0,
                write_timeout=write_timeout_s,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise TransportConnectError(f"Could not open serial port {port}: {exc}") from exc

    def write_line(self, text: str) -> None:
        if self._closed:
            raise TransportSendError(f"Serial port {self.port} is closed")
        payload = text if text.endswith("\n") else text + "\n"
        try:
            self._serial.write(payload.encode("utf-8"))
            self._serial.flush()
        except serial.SerialTimeoutException as exc:
            raise TransportTimeoutError(f"Write to {self.port} timed out") from exc
        except (serial.SerialException, OSError) as exc:
            raise TransportSendError(f"Write to {self.port} failed: {exc}") from exc

    def read_line(self, timeout: float) -> str:
        if self._closed:
            raise TransportSendError(f"Serial port {self.port} is closed")
        timeout = max(timeout, 0.0)
        try:
            if self._serial.timeout != timeout:
                self._serial.timeout = timeout
            raw = self._serial.readline()
        except (serial.SerialException, OSError, TypeError) as exc:
            if self._closed:
                raise TransportSendError(f"Serial port {self.port} was closed during read") from exc
            raise TransportSendError(f"Read from {self.port} failed: {exc}") from exc

        # readline returns whatever arrived when the timeout hits; keep it for the next call
        buffered = self._pending + raw
        if not buffered.endswith(b"\n"):
            self._pending = buffered
            raise TransportTimeoutError(f"No complete line from {self.port} within {timeout:.2f}s")
        self._pending = b""
        return buffered.decode("utf-8", errors="replace").rstrip("\r\n")

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        cancel_read = getattr(self._serial, "cancel_read", None)
        if cancel_read is not None:
            try:
                cancel_read()
            except (serial.SerialException, OSError):
                pass
        self._serial.close()

    def __enter__(self) -> SerialLineTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
