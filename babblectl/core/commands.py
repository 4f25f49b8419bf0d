"""Typed builders for the firmware commands declared in the catalog."""

from __future__ import annotations

from enum import Enum

from babblectl.core.catalog_loader import CommandCatalog, load_catalog
from babblectl.core.model import Command


class Mode(str, Enum):
    WIFI = "wifi"
    UVC = "uvc"
    AUTO = "auto"


class FirmwareCommands:
    def __init__(self, catalog: CommandCatalog | None = None) -> None:
        self.catalog = catalog or load_catalog()

    def restart_device(self) -> Command:
        return self.catalog.build("restart_device")

    def get_serial(self) -> Command:
        return self.catalog.build("get_serial")

    def get_who_am_i(self) -> Command:
        return self.catalog.build("get_who_am_i")

    def scan_networks(self) -> Command:
        return self.catalog.build("scan_networks")

    def set_wifi(self, ssid: str, password: str) -> Command:
        # firmware stores a single named network slot
        payload = {"name": "main", "ssid": ssid, "password": password, "channel": 0, "power": 0}
        return self.catalog.build("set_wifi", payload)

    def set_mdns(self, hostname: str) -> Command:
        return self.catalog.build("set_mdns", {"hostname": hostname})

    def get_device_mode(self, *, legacy: bool = False) -> Command:
        return self.catalog.build("get_device_mode_legacy" if legacy else "get_device_mode")

    def set_paused(self, state: bool) -> Command:
        return self.catalog.build("pause", {"pause": state})

    def get_wifi_status(self) -> Command:
        return self.catalog.build("get_wifi_status")

    def connect_wifi(self) -> Command:
        return self.catalog.build("connect_wifi")

    def start_streaming(self) -> Command:
        return self.catalog.build("start_streaming")

    def switch_mode(self, mode: Mode) -> Command:
        return self.catalog.build("switch_mode", {"mode": Mode(mode).value})
