"""Stable public API for building tooling on top of babblectl.

This module is the supported integration surface for third-party callers
(desktop apps, calibration tools, scripts). Avoid importing from internal
modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from babblectl.core.catalog_loader import CommandCatalog, load_catalog
from babblectl.core.commands import FirmwareCommands, Mode
from babblectl.core.config import Settings, load_settings
from babblectl.core.errors import (
    BabbleError,
    CatalogLoadError,
    CatalogValidationError,
    CommandResolutionError,
    ConfigError,
    DeviceNotFoundError,
    ResultError,
    SessionStateError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    TransportTimeoutError,
    UnsupportedCommandError,
)
from babblectl.core.factory import SessionFactory
from babblectl.core.model import (
    Command,
    DeviceMode,
    Failure,
    FirmwareVersion,
    Heartbeat,
    PortSession,
    Result,
    SerialInfo,
    Success,
    VersionRange,
    WhoAmI,
    WifiNetwork,
    WifiNetworkList,
    WifiStatus,
)
from babblectl.core.session import FirmwareSession
from babblectl.core.session_current import CurrentFirmwareSession
from babblectl.core.session_legacy import LegacyFirmwareSession
from babblectl.transports.base import TransportFactory

__all__ = [
    "BabbleError",
    "CatalogLoadError",
    "CatalogValidationError",
    "CommandResolutionError",
    "ConfigError",
    "DeviceNotFoundError",
    "ResultError",
    "SessionStateError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "TransportTimeoutError",
    "UnsupportedCommandError",
    "Command",
    "DeviceMode",
    "Failure",
    "FirmwareVersion",
    "Heartbeat",
    "Mode",
    "PortSession",
    "Result",
    "SerialInfo",
    "Settings",
    "Success",
    "VersionRange",
    "WhoAmI",
    "WifiNetwork",
    "WifiNetworkList",
    "WifiStatus",
    "FirmwareSession",
    "CurrentFirmwareSession",
    "LegacyFirmwareSession",
    "Client",
]


class Client:
    """Public client for discovering boards and opening firmware sessions.

    A `Client` wraps settings, the command catalog and the session factory. The
    sessions it returns are owned by the caller and must be closed.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        catalog: CommandCatalog | None = None,
        transport_factory: TransportFactory | None = None,
        port_lister: Callable[[], Sequence[str]] | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.catalog = catalog or load_catalog()
        self.commands = FirmwareCommands(self.catalog)
        self._factory = SessionFactory(
            transport_factory=transport_factory,
            port_lister=port_lister,
            settings=self.settings,
            catalog=self.catalog,
        )

    @property
    def catalog_warnings(self) -> tuple[str, ...]:
        return self.catalog.warnings

    def list_ports(self) -> list[str]:
        return self._factory.list_ports()

    def discover(self) -> list[PortSession]:
        return self._factory.try_open_all_sessions()

    async def discover_async(self) -> list[PortSession]:
        return await self._factory.try_open_all_sessions_async()

    def open(self, port: str) -> FirmwareSession:
        session = self._factory.try_open_session(port)
        if session is None:
            raise DeviceNotFoundError(f"No supported board answered on {port}")
        return session

    async def open_async(self, port: str) -> FirmwareSession:
        session = await self._factory.try_open_session_async(port)
        if session is None:
            raise DeviceNotFoundError(f"No supported board answered on {port}")
        return session
