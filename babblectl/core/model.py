"""Core data models used across catalog, sessions, factory and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Generic, TypeVar, Union

from babblectl.core.errors import DocumentError, ResultError, VersionFormatError

if TYPE_CHECKING:
    from babblectl.core.session import FirmwareSession

T = TypeVar("T")


@dataclass(frozen=True, order=True)
class FirmwareVersion:
    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> FirmwareVersion:
        parts = text.strip().split(".")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise VersionFormatError(f"Invalid firmware version '{text}'")
        return cls(*(int(p) for p in parts))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


LEGACY_VERSION = FirmwareVersion(0, 0, 0)
CURRENT_BASELINE_VERSION = FirmwareVersion(0, 0, 1)


@dataclass(frozen=True)
class VersionRange:
    min_version: FirmwareVersion
    max_version: FirmwareVersion | None = None

    def is_allowed(self, version: FirmwareVersion) -> bool:
        if version < self.min_version:
            return False
        if self.max_version is not None and version > self.max_version:
            return False
        return True

    def __str__(self) -> str:
        upper = str(self.max_version) if self.max_version else "*"
        return f"{self.min_version}..{upper}"


@dataclass(frozen=True)
class Command:
    """A single firmware operation ready to be dispatched on a session."""

    name: str
    versions: VersionRange
    payload: Any = None
    response: str | None = None
    split_reply: str | None = None

    def version_range(self) -> tuple[FirmwareVersion, FirmwareVersion | None]:
        return self.versions.min_version, self.versions.max_version

    def to_wire(self) -> dict[str, Any]:
        return {"command": self.name, "data": self.payload}

    def decode(self, data: Any) -> Any:
        if self.response is None:
            return data
        return RESPONSE_SHAPES[self.response](data)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: ClassVar[bool] = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    message: str
    ok: ClassVar[bool] = False

    def unwrap(self) -> Any:
        raise ResultError(f"Cannot access value. Error: {self.message}")


Result = Union[Success[T], Failure]


def _field(data: Any, key: str, kind: type | tuple[type, ...], *, optional: bool = False) -> Any:
    if not isinstance(data, dict):
        raise DocumentError(f"Expected an object, got {type(data).__name__}")
    value = data.get(key)
    if value is None and optional:
        return None
    if not isinstance(value, kind) or isinstance(value, bool) and kind is int:
        raise DocumentError(f"Field '{key}' missing or of wrong type in {data!r}")
    return value


@dataclass(frozen=True)
class WhoAmI:
    who_am_i: str
    version: str

    @classmethod
    def from_data(cls, data: Any) -> WhoAmI:
        return cls(who_am_i=_field(data, "who_am_i", str), version=_field(data, "version", str))


@dataclass(frozen=True)
class SerialInfo:
    mac: str
    serial: str

    @classmethod
    def from_data(cls, data: Any) -> SerialInfo:
        return cls(mac=_field(data, "mac", str), serial=_field(data, "serial", str))


@dataclass(frozen=True)
class DeviceMode:
    mode: str
    value: int

    @classmethod
    def from_data(cls, data: Any) -> DeviceMode:
        return cls(mode=_field(data, "mode", str), value=_field(data, "value", int))


@dataclass(frozen=True)
class WifiStatus:
    status: str
    networks_configured: int
    ip_address: str | None = None

    @classmethod
    def from_data(cls, data: Any) -> WifiStatus:
        return cls(
            status=_field(data, "status", str),
            networks_configured=_field(data, "networks_configured", int),
            ip_address=_field(data, "ip_address", str, optional=True),
        )


@dataclass(frozen=True)
class WifiNetwork:
    ssid: str
    channel: int
    rssi: int
    mac_address: str
    auth_mode: int

    @classmethod
    def from_data(cls, data: Any) -> WifiNetwork:
        return cls(
            ssid=_field(data, "ssid", str),
            channel=_field(data, "channel", int),
            rssi=_field(data, "rssi", int),
            mac_address=_field(data, "mac_address", str),
            auth_mode=_field(data, "auth_mode", int),
        )


@dataclass(frozen=True)
class WifiNetworkList:
    networks: tuple[WifiNetwork, ...]

    @classmethod
    def from_data(cls, data: Any) -> WifiNetworkList:
        entries = _field(data, "networks", list)
        return cls(networks=tuple(WifiNetwork.from_data(entry) for entry in entries))


@dataclass(frozen=True)
class Heartbeat:
    heartbeat: str
    serial: str | None = None

    @classmethod
    def from_data(cls, data: Any) -> Heartbeat:
        return cls(heartbeat=_field(data, "heartbeat", str), serial=_field(data, "serial", str, optional=True))


RESPONSE_SHAPES: dict[str, Callable[[Any], Any]] = {
    "who_am_i": WhoAmI.from_data,
    "serial": SerialInfo.from_data,
    "device_mode": DeviceMode.from_data,
    "wifi_status": WifiStatus.from_data,
    "wifi_networks": WifiNetworkList.from_data,
}


@dataclass(frozen=True)
class PortSession:
    port: str
    session: FirmwareSession
