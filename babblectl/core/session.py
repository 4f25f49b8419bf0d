"""Shared session scaffolding: exclusive dispatch, version assignment and envelopes."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar

from babblectl.core.documents import JsonDocumentReader
from babblectl.core.errors import DeviceError, SessionStateError, TransportTimeoutError
from babblectl.core.model import Command, Failure, FirmwareVersion, Result
from babblectl.core.version_guard import validate_command_for_version
from babblectl.transports.base import LineTransport

LOGGER = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Timeout reached"


def encode_envelope(command: Command) -> str:
    return json.dumps({"commands": [command.to_wire()]}, separators=(",", ":"))


class FirmwareSession(ABC):
    """A connection to one board speaking one wire dialect.

    The session owns its transport. Only one command is in flight at a time;
    concurrent callers queue on an internal lock held for the full write and
    reply correlation.
    """

    dialect: ClassVar[str]
    default_version: ClassVar[FirmwareVersion]

    def __init__(self, transport: LineTransport, *, reader: JsonDocumentReader | None = None) -> None:
        self._transport = transport
        self._reader = reader or JsonDocumentReader()
        self._lock = threading.Lock()
        self._version = self.default_version
        self._negotiated = False
        self._closed = False

    @property
    def version(self) -> FirmwareVersion:
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def assign_version(self, version: FirmwareVersion) -> None:
        if self._negotiated:
            raise SessionStateError(f"Session version already negotiated as {self._version}")
        self._version = version
        self._negotiated = True

    def send_command(self, command: Command, timeout: float) -> Result[Any]:
        validate_command_for_version(command, self._version)
        return self._run_exclusive(lambda: self._exchange(command, timeout))

    async def send_command_async(self, command: Command, timeout: float) -> Result[Any]:
        validate_command_for_version(command, self._version)
        return await asyncio.to_thread(self.send_command, command, timeout)

    @abstractmethod
    def _exchange(self, command: Command, timeout: float) -> Result[Any]:
        """Write ``command`` and correlate its reply. Called with the lock held."""

    def _run_exclusive(self, operation: Callable[[], Result[Any]]) -> Result[Any]:
        with self._lock:
            if self._closed:
                return Failure("Session is closed")
            try:
                return operation()
            except TransportTimeoutError:
                LOGGER.debug("Timed out waiting for reply")
                return Failure(TIMEOUT_MESSAGE)
            except DeviceError as exc:
                LOGGER.error("Device reported error: %s", exc)
                return Failure(str(exc))
            except Exception as exc:
                LOGGER.debug("Command failed", exc_info=True)
                return Failure(str(exc) or type(exc).__name__)

    def _write_command(self, command: Command) -> None:
        payload = encode_envelope(command)
        LOGGER.debug("Sending payload: %s", payload)
        self._transport.write_line(payload)

    def _read_document(self, timeout: float) -> dict[str, Any]:
        document = self._reader.read_document(self._transport.read_line, timeout)
        LOGGER.debug("Received document: %s", document)
        return document

    def close(self) -> None:
        """Close the transport; a blocked read fails and releases the lock."""
        if self._closed:
            return
        self._closed = True
        self._transport.close()

    def __enter__(self) -> FirmwareSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(version={self._version})"
