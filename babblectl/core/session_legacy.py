"""Session for legacy boards speaking the line protocol.

Legacy firmware has no request ids and freely interleaves unsolicited documents
(heartbeats, status dumps) with replies. A reply is recognised by its top-level
key: ``results`` for success, ``error`` for a device-side failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from babblectl.core.errors import (
    DeviceError,
    DocumentError,
    TransportError,
    TransportTimeoutError,
)
from babblectl.core.model import LEGACY_VERSION, Command, Heartbeat, Result, Success
from babblectl.core.session import TIMEOUT_MESSAGE, FirmwareSession
from babblectl.core.version_guard import validate_command_for_version

LOGGER = logging.getLogger(__name__)


def _lookup(document: dict[str, Any], key: str) -> tuple[bool, Any]:
    for name, value in document.items():
        if name.lower() == key:
            return True, value
    return False, None


def _error_message(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def unwrap_result(document: dict[str, Any]) -> Any:
    """Return the payload of a ``{"results": [{"result": "<json>"}]}`` document."""
    _, results = _lookup(document, "results")
    if not isinstance(results, list) or not results:
        raise DocumentError(f"Reply has no results: {document!r}")
    entry = results[0]
    if isinstance(entry, str):
        try:
            entry = json.loads(entry)
        except json.JSONDecodeError as exc:
            raise DocumentError(f"Result entry is not JSON: {entry!r}") from exc
    if not isinstance(entry, dict) or "result" not in entry:
        raise DocumentError(f"Malformed result entry: {entry!r}")
    result = entry["result"]
    if not isinstance(result, str):
        return result
    try:
        return json.loads(result)
    except json.JSONDecodeError:
        # some acknowledgements are bare text
        return result


class LegacyFirmwareSession(FirmwareSession):
    dialect = "legacy"
    default_version = LEGACY_VERSION

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.last_heartbeat: Heartbeat | None = None

    def _await_key(self, key: str, deadline: float) -> dict[str, Any]:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransportTimeoutError(TIMEOUT_MESSAGE)
            document = self._read_document(remaining)
            found, _ = _lookup(document, key)
            if found:
                return document
            found, error = _lookup(document, "error")
            if found:
                raise DeviceError(_error_message(error))
            LOGGER.debug("Skipping unrelated document while waiting for '%s'", key)

    def _exchange(self, command: Command, timeout: float) -> Result[Any]:
        if command.split_reply:
            return self._exchange_split(command, command.split_reply, timeout)
        deadline = time.monotonic() + timeout
        self._write_command(command)
        document = self._await_key("results", deadline)
        return Success(command.decode(unwrap_result(document)))

    def send_split_command(self, command: Command, payload_key: str, timeout: float) -> Result[Any]:
        """Send a command whose payload arrives in its own document ahead of the ack."""
        validate_command_for_version(command, self._version)
        return self._run_exclusive(lambda: self._exchange_split(command, payload_key, timeout))

    def _exchange_split(self, command: Command, payload_key: str, timeout: float) -> Result[Any]:
        deadline = time.monotonic() + timeout
        self._write_command(command)
        payload = self._read_payload(payload_key, deadline)
        self._read_ack(deadline)
        return Success(command.decode(payload))

    def _read_payload(self, payload_key: str, deadline: float) -> dict[str, Any]:
        return self._await_key(payload_key, deadline)

    def _read_ack(self, deadline: float) -> None:
        try:
            self._await_key("results", deadline)
        except (TransportError, DeviceError) as exc:
            LOGGER.warning("Payload received but acknowledgement missing: %s", exc)

    def wait_for_heartbeat(self, timeout: float) -> Heartbeat | None:
        """Wait passively for an unsolicited heartbeat; ``None`` if none arrives in time."""
        with self._lock:
            if self._closed:
                return None
            deadline = time.monotonic() + timeout
            try:
                while True:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    document = self._read_document(remaining)
                    if not _lookup(document, "heartbeat")[0]:
                        LOGGER.debug("Skipping non-heartbeat document")
                        continue
                    try:
                        heartbeat = Heartbeat.from_data({k.lower(): v for k, v in document.items()})
                    except DocumentError as exc:
                        LOGGER.debug("Skipping malformed heartbeat: %s", exc)
                        continue
                    self.last_heartbeat = heartbeat
                    return heartbeat
            except TransportTimeoutError:
                LOGGER.debug("No heartbeat within %.2fs", timeout)
                return None
            except TransportError as exc:
                LOGGER.debug("Heartbeat wait failed: %s", exc)
                return None

    async def wait_for_heartbeat_async(self, timeout: float) -> Heartbeat | None:
        return await asyncio.to_thread(self.wait_for_heartbeat, timeout)
