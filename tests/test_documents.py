from __future__ import annotations

import time

import pytest

from babblectl.core.documents import JsonDocumentReader
from babblectl.core.errors import TransportTimeoutError


class LineSource:
    def __init__(self, lines: list[str]) -> None:
        self.lines = list(lines)
        self.timeouts: list[float] = []

    def __call__(self, timeout: float) -> str:
        self.timeouts.append(timeout)
        if not self.lines:
            time.sleep(min(timeout, 0.05))
            raise TransportTimeoutError("no data")
        return self.lines.pop(0)


def test_reads_single_line_document() -> None:
    reader = JsonDocumentReader()
    document = reader.read_document(LineSource(['{"heartbeat": "ok", "serial": "1"}']), 1.0)
    assert document == {"heartbeat": "ok", "serial": "1"}


def test_joins_document_split_across_lines() -> None:
    reader = JsonDocumentReader()
    source = LineSource(['{"results": [', '{"result": "{\\"a\\": 1}"}', "]}"])
    assert reader.read_document(source, 1.0) == {"results": [{"result": '{"a": 1}'}]}


def test_skips_log_noise_before_document() -> None:
    reader = JsonDocumentReader()
    source = LineSource(["I (1234) wifi: starting", "", 'boot> {"error": "busy"}'])
    assert reader.read_document(source, 1.0) == {"error": "busy"}


def test_stray_brace_in_log_does_not_swallow_reply() -> None:
    reader = JsonDocumentReader()
    source = LineSource(["W (88) cfg: bad value {", '{"results": []}'])
    assert reader.read_document(source, 1.0) == {"results": []}


def test_braces_inside_strings_are_ignored() -> None:
    reader = JsonDocumentReader()
    source = LineSource(['{"error": "unbalanced } and {"}'])
    assert reader.read_document(source, 1.0) == {"error": "unbalanced } and {"}


def test_two_documents_on_one_line_are_returned_in_order() -> None:
    reader = JsonDocumentReader()
    source = LineSource(['{"a": 1}{"b": 2}'])
    assert reader.read_document(source, 1.0) == {"a": 1}
    assert reader.read_document(source, 1.0) == {"b": 2}


def test_malformed_object_is_skipped() -> None:
    reader = JsonDocumentReader()
    source = LineSource(["{not json}", '{"ok": true}'])
    assert reader.read_document(source, 1.0) == {"ok": True}


def test_times_out_on_incomplete_document() -> None:
    reader = JsonDocumentReader()
    source = LineSource(['{"results": ['])
    started = time.monotonic()
    with pytest.raises(TransportTimeoutError):
        reader.read_document(source, 0.2)
    assert time.monotonic() - started < 1.0
    assert all(timeout <= 0.2 for timeout in source.timeouts)
