"""Port discovery and dialect negotiation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from fnmatch import fnmatch

from babblectl.core.catalog_loader import CommandCatalog
from babblectl.core.commands import FirmwareCommands
from babblectl.core.config import Settings, load_settings
from babblectl.core.errors import TransportError, VersionFormatError
from babblectl.core.model import LEGACY_VERSION, FirmwareVersion, PortSession
from babblectl.core.session import FirmwareSession
from babblectl.core.session_current import CurrentFirmwareSession
from babblectl.core.session_legacy import LegacyFirmwareSession
from babblectl.transports.base import LineTransport, TransportFactory
from babblectl.transports.serial_port import SerialLineTransport, list_serial_ports

LOGGER = logging.getLogger(__name__)

# some v2 firmware builds report e.g. "0.0.2rc0"
_RELEASE_CANDIDATE_SUFFIX = "rc0"


def parse_reported_version(text: str) -> FirmwareVersion:
    if text.endswith(_RELEASE_CANDIDATE_SUFFIX):
        text = text[: -len(_RELEASE_CANDIDATE_SUFFIX)]
    return FirmwareVersion.parse(text)


class SessionFactory:
    def __init__(
        self,
        *,
        transport_factory: TransportFactory | None = None,
        port_lister: Callable[[], Sequence[str]] | None = None,
        settings: Settings | None = None,
        catalog: CommandCatalog | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.commands = FirmwareCommands(catalog)
        self._transport_factory = transport_factory or self._open_serial
        self._port_lister = port_lister or list_serial_ports

    def _open_serial(self, port: str) -> LineTransport:
        return SerialLineTransport(port, baud_rate=self.settings.baud_rate)

    def list_ports(self) -> list[str]:
        ports = dict.fromkeys(self._port_lister())
        return [
            port
            for port in ports
            if not any(fnmatch(port, pattern) for pattern in self.settings.ignore_ports)
        ]

    def _open_transport(self, port: str) -> LineTransport | None:
        try:
            return self._transport_factory(port)
        except TransportError as exc:
            LOGGER.info("Could not open %s: %s", port, exc)
            return None

    def try_open_session(self, port: str) -> FirmwareSession | None:
        """Negotiate with the board on ``port``; ``None`` if it speaks neither dialect.

        Unexpected errors while probing are logged and also yield ``None``.
        """
        try:
            return self._negotiate(port)
        except Exception:
            LOGGER.warning("Probing %s failed unexpectedly", port, exc_info=True)
            return None

    def _negotiate(self, port: str) -> FirmwareSession | None:
        session: FirmwareSession | None = self._try_open_current_session(port)
        if session is None:
            session = self._try_open_legacy_session(port)
        if session is None:
            LOGGER.info("%s is most likely not a Babble board", port)
        return session

    async def try_open_session_async(self, port: str) -> FirmwareSession | None:
        return await asyncio.to_thread(self.try_open_session, port)

    def _try_open_current_session(self, port: str) -> CurrentFirmwareSession | None:
        LOGGER.info("Attempting to open current-protocol session for %s", port)
        transport = self._open_transport(port)
        if transport is None:
            return None

        session = CurrentFirmwareSession(transport)
        response = session.send_command(self.commands.get_who_am_i(), self.settings.probe_timeout_s)
        version: FirmwareVersion | None = None
        if response.ok:
            try:
                version = parse_reported_version(response.value.version)
            except VersionFormatError as exc:
                LOGGER.info("Ignoring board on %s with unusable version: %s", port, exc)

        if version is None:
            LOGGER.info("Can't open current-protocol session for %s", port)
            session.close()
            return None

        session.assign_version(version)
        LOGGER.info("Opened current-protocol session for %s (firmware v%s)", port, version)
        return session

    def _try_open_legacy_session(self, port: str) -> LegacyFirmwareSession | None:
        LOGGER.info("Attempting to open legacy session for %s", port)
        transport = self._open_transport(port)
        if transport is None:
            return None

        session = LegacyFirmwareSession(transport)
        heartbeat = session.wait_for_heartbeat(self.settings.probe_timeout_s)
        if heartbeat is None:
            LOGGER.info("Can't open legacy session for %s", port)
            session.close()
            return None

        session.assign_version(LEGACY_VERSION)
        LOGGER.info("Opened legacy session for %s (serial %s)", port, heartbeat.serial)
        return session

    def try_open_all_sessions(self) -> list[PortSession]:
        ports = self.list_ports()
        if not ports:
            return []
        with ThreadPoolExecutor(max_workers=len(ports), thread_name_prefix="babble-probe") as pool:
            sessions = list(pool.map(self.try_open_session, ports))
        return [PortSession(port, session) for port, session in zip(ports, sessions) if session is not None]

    async def try_open_all_sessions_async(self) -> list[PortSession]:
        ports = self.list_ports()
        sessions = await asyncio.gather(*(self.try_open_session_async(port) for port in ports))
        return [PortSession(port, session) for port, session in zip(ports, sessions) if session is not None]
