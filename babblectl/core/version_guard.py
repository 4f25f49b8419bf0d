"""Firmware version gating for commands."""

from __future__ import annotations

from babblectl.core.errors import UnsupportedCommandError
from babblectl.core.model import Command, FirmwareVersion


def validate_command_for_version(command: Command, version: FirmwareVersion) -> None:
    if not command.versions.is_allowed(version):
        raise UnsupportedCommandError(
            f"Command '{command.name}' ({command.versions}) not valid for firmware v{version}"
        )
