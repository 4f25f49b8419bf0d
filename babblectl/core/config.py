"""User settings loaded from the XDG config directory."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from jsonschema import ValidationError

from babblectl.core.catalog_loader import UniqueKeyLoader, load_schema_validator
from babblectl.core.errors import CatalogValidationError, ConfigError


@dataclass(frozen=True)
class Settings:
    baud_rate: int = 115200
    probe_timeout_s: float = 3.0
    command_timeout_s: float = 5.0
    scan_timeout_s: float = 40.0
    ignore_ports: tuple[str, ...] = field(default_factory=tuple)


def config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "babblectl/config.yaml"


def load_settings(path: Path | None = None) -> Settings:
    path = path or config_path()
    if not path.is_file():
        return Settings()

    try:
        loaded = yaml.load(path.read_text(encoding="utf-8"), Loader=UniqueKeyLoader)
    except OSError as exc:
        raise ConfigError(f"Could not read settings file {path}: {exc}") from exc
    except (yaml.YAMLError, CatalogValidationError) as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return Settings()
    if not isinstance(loaded, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping at root")

    validator = load_schema_validator("config.schema.json")
    try:
        validator.validate(loaded)
    except ValidationError as exc:
        key = ".".join(str(p) for p in exc.path)
        where = f" ({key})" if key else ""
        raise ConfigError(f"Invalid settings in {path}{where}: {exc.message}") from exc

    defaults = Settings()
    return Settings(
        baud_rate=int(loaded.get("baud_rate", defaults.baud_rate)),
        probe_timeout_s=float(loaded.get("probe_timeout_s", defaults.probe_timeout_s)),
        command_timeout_s=float(loaded.get("command_timeout_s", defaults.command_timeout_s)),
        scan_timeout_s=float(loaded.get("scan_timeout_s", defaults.scan_timeout_s)),
        ignore_ports=tuple(loaded.get("ignore_ports", ())),
    )
