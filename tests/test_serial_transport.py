from __future__ import annotations

from types import SimpleNamespace

import pytest
import serial
import serial.tools.list_ports

from babblectl.core.errors import TransportConnectError, TransportSendError, TransportTimeoutError
from babblectl.transports.serial_port import SerialLineTransport, list_serial_ports


class FakeSerial:
    def __init__(self, port: str, **kwargs) -> None:
        self.port = port
        self.kwargs = kwargs
        self.timeout = kwargs.get("timeout")
        self.chunks: list[bytes] = []
        self.written: list[bytes] = []
        self.closed = False

    def readline(self) -> bytes:
        return self.chunks.pop(0) if self.chunks else b""

    def write(self, data: bytes) -> int:
        self.written.append(data)
        return len(data)

    def flush(self) -> None:
        pass

    def cancel_read(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def _transport() -> tuple[SerialLineTransport, FakeSerial]:
    created: list[FakeSerial] = []

    def factory(port: str, **kwargs) -> FakeSerial:
        created.append(FakeSerial(port, **kwargs))
        return created[-1]

    transport = SerialLineTransport("/dev/ttyACM0", baud_rate=921600, serial_factory=factory)
    return transport, created[0]


def test_opens_port_with_line_settings() -> None:
    _, fake = _transport()
    assert fake.port == "/dev/ttyACM0"
    assert fake.kwargs["baudrate"] == 921600
    assert fake.kwargs["bytesize"] == serial.EIGHTBITS
    assert fake.kwargs["parity"] == serial.PARITY_NONE


def test_open_failure_raises_connect_error() -> None:
    def factory(port: str, **kwargs) -> FakeSerial:
        raise serial.SerialException("could not open port")

    with pytest.raises(TransportConnectError):
        SerialLineTransport("COM9", serial_factory=factory)


def test_write_line_appends_newline() -> None:
    transport, fake = _transport()
    transport.write_line('{"commands":[]}')
    assert fake.written == [b'{"commands":[]}\n']


def test_read_line_strips_line_ending_and_sets_timeout() -> None:
    transport, fake = _transport()
    fake.chunks = [b'{"heartbeat":"x"}\r\n']

    assert transport.read_line(0.5) == '{"heartbeat":"x"}'
    assert fake.timeout == 0.5


def test_partial_line_is_kept_for_next_read() -> None:
    transport, fake = _transport()
    fake.chunks = [b'{"error":', b' "busy"}\n']

    with pytest.raises(TransportTimeoutError):
        transport.read_line(0.1)
    assert transport.read_line(0.1) == '{"error": "busy"}'


def test_empty_read_times_out() -> None:
    transport, _ = _transport()
    with pytest.raises(TransportTimeoutError):
        transport.read_line(0.1)


def test_closed_transport_refuses_io() -> None:
    transport, fake = _transport()
    transport.close()
    transport.close()

    assert fake.closed
    with pytest.raises(TransportSendError):
        transport.write_line("x")
    with pytest.raises(TransportSendError):
        transport.read_line(0.1)


def test_list_serial_ports_deduplicates(monkeypatch: pytest.MonkeyPatch) -> None:
    ports = [SimpleNamespace(device=name) for name in ("COM4", "COM3", "COM4")]
    monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: ports)

    assert list_serial_ports() == ["COM3", "COM4"]
