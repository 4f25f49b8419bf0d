from __future__ import annotations

import pytest

from babblectl.core.errors import UnsupportedCommandError, VersionFormatError
from babblectl.core.model import Command, FirmwareVersion, VersionRange
from babblectl.core.version_guard import validate_command_for_version


def _command(min_version: str, max_version: str | None = None) -> Command:
    return Command(
        name="pause",
        versions=VersionRange(
            FirmwareVersion.parse(min_version),
            FirmwareVersion.parse(max_version) if max_version else None,
        ),
    )


def test_version_parse_and_ordering() -> None:
    assert FirmwareVersion.parse("0.0.2") == FirmwareVersion(0, 0, 2)
    assert FirmwareVersion.parse("1.2") == FirmwareVersion(1, 2, 0)
    assert FirmwareVersion(0, 0, 10) > FirmwareVersion(0, 0, 9)
    assert FirmwareVersion(0, 1, 0) > FirmwareVersion(0, 0, 99)
    assert str(FirmwareVersion(1, 2, 3)) == "1.2.3"


@pytest.mark.parametrize("text", ["", "1", "0.0.2rc0", "a.b.c", "1.2.3.4"])
def test_version_parse_rejects_garbage(text: str) -> None:
    with pytest.raises(VersionFormatError):
        FirmwareVersion.parse(text)


def test_open_ended_range_allows_newer_versions() -> None:
    command = _command("0.0.1")
    validate_command_for_version(command, FirmwareVersion(0, 0, 1))
    validate_command_for_version(command, FirmwareVersion(3, 0, 0))
    with pytest.raises(UnsupportedCommandError):
        validate_command_for_version(command, FirmwareVersion(0, 0, 0))


def test_bounded_range_rejects_newer_versions() -> None:
    command = _command("0.0.0", "0.0.0")
    validate_command_for_version(command, FirmwareVersion(0, 0, 0))
    with pytest.raises(UnsupportedCommandError) as exc:
        validate_command_for_version(command, FirmwareVersion(0, 0, 1))
    assert "pause" in str(exc.value)
    assert "0.0.1" in str(exc.value)


def test_command_exposes_version_range() -> None:
    command = _command("0.0.1", "0.2.0")
    assert command.version_range() == (FirmwareVersion(0, 0, 1), FirmwareVersion(0, 2, 0))
