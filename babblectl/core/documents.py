"""Reassembly of JSON documents from a line-oriented byte stream.

Boards interleave debug log output with protocol replies and may split a single
reply across several lines, so a reply is whatever balanced ``{...}`` object
can be cut out of the accumulated text. Anything in front of it is noise, and
so is an unclosed brace that appears part way through a log line.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from babblectl.core.errors import TransportTimeoutError

LOGGER = logging.getLogger(__name__)

_MAX_BUFFER_CHARS = 64 * 1024


def _balanced_end(text: str, start: int) -> int | None:
    """Return the index just past the object opened at ``start``, or None if it is not closed yet."""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


class JsonDocumentReader:
    def __init__(self) -> None:
        self._buffer = ""

    def _extract(self) -> dict[str, Any] | None:
        while True:
            start = self._buffer.find("{")
            if start < 0:
                if self._buffer.strip():
                    LOGGER.debug("Discarding non-JSON output: %r", self._buffer)
                self._buffer = ""
                return None
            line_start = self._buffer.rfind("\n", 0, start) + 1
            mid_line = bool(self._buffer[line_start:start].strip())
            if start > 0:
                LOGGER.debug("Discarding non-JSON output: %r", self._buffer[:start])
                self._buffer = self._buffer[start:]

            end = _balanced_end(self._buffer, 0)
            if end is None:
                # only a brace at the start of a line may open a multi-line reply
                newline = self._buffer.find("\n")
                if mid_line and newline >= 0:
                    LOGGER.debug("Discarding unterminated output: %r", self._buffer[:newline])
                    self._buffer = self._buffer[newline + 1 :]
                    continue
                if len(self._buffer) > _MAX_BUFFER_CHARS:
                    LOGGER.debug("Dropping oversized partial document")
                    self._buffer = self._buffer[1:]
                    continue
                return None

            candidate, self._buffer = self._buffer[:end], self._buffer[end:]
            try:
                document = json.loads(candidate)
            except json.JSONDecodeError:
                LOGGER.debug("Discarding malformed document: %r", candidate)
                continue
            if isinstance(document, dict):
                return document

    def read_document(self, read_line: Callable[[float], str], timeout: float) -> dict[str, Any]:
        """Read lines until one complete JSON object is available.

        Raises TransportTimeoutError once ``timeout`` seconds have elapsed without a
        complete document; whatever partial text was received is kept for the next call.
        """
        deadline = time.monotonic() + timeout
        while True:
            document = self._extract()
            if document is not None:
                return document
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransportTimeoutError("Timeout reached")
            self._buffer += read_line(remaining) + "\n"
