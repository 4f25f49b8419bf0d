"""Session for boards speaking the structured (v2) protocol."""

from __future__ import annotations

from typing import Any

from babblectl.core.errors import DocumentError
from babblectl.core.model import CURRENT_BASELINE_VERSION, Command, Failure, Result, Success
from babblectl.core.session import FirmwareSession


def first_result(document: dict[str, Any]) -> dict[str, Any]:
    """Return the ``result`` object of the first entry in a v2 reply."""
    results = document.get("results")
    if not isinstance(results, list) or not results:
        raise DocumentError(f"Reply has no results: {document!r}")
    entry = results[0]
    if not isinstance(entry, dict) or not isinstance(entry.get("result"), dict):
        raise DocumentError(f"Malformed result entry: {entry!r}")
    return entry["result"]


class CurrentFirmwareSession(FirmwareSession):
    """One envelope in, one reply document out, with an explicit status per command."""

    dialect = "current"
    # lowest version this dialect exists at; the factory replaces it with the reported one
    default_version = CURRENT_BASELINE_VERSION

    def _exchange(self, command: Command, timeout: float) -> Result[Any]:
        self._write_command(command)
        result = first_result(self._read_document(timeout))
        status = result.get("status")
        data = result.get("data")
        if status == "success":
            return Success(command.decode(data))
        if status == "error" and isinstance(data, str):
            return Failure(data)
        return Failure(f"Something went wrong: {result}")
