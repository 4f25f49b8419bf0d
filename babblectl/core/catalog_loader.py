"""Command catalog loading and validation for YAML-based firmware command tables."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from babblectl.core.errors import CatalogLoadError, CatalogValidationError, CommandResolutionError
from babblectl.core.model import Command, FirmwareVersion, VersionRange

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise CatalogValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class CommandSpec:
    id: str
    command: str
    versions: VersionRange
    response: str | None = None
    split_reply: str | None = None


@dataclass(frozen=True)
class CommandCatalog:
    specs: dict[str, CommandSpec]
    warnings: tuple[str, ...] = ()

    def get(self, command_id: str) -> CommandSpec:
        spec = self.specs.get(command_id)
        if spec is None:
            available = ", ".join(sorted(self.specs))
            raise CommandResolutionError(
                f"Unknown command '{command_id}'. Available: {available}"
            )
        return spec

    def build(self, command_id: str, payload: Any = None) -> Command:
        spec = self.get(command_id)
        return Command(
            name=spec.command,
            versions=spec.versions,
            payload=payload,
            response=spec.response,
            split_reply=spec.split_reply,
        )


def load_schema_validator(name: str) -> Any:
    schema_text = resources.files("babblectl.schemas").joinpath(name).read_text(encoding="utf-8")
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _catalog_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "babblectl/catalogs", xdg_data / "babblectl/catalogs"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogLoadError(f"Could not read catalog file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise CatalogValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise CatalogValidationError(f"Catalog file {path} must contain a mapping at root")
    return loaded


def _build_specs(doc: dict[str, Any], source: Path | Traversable) -> dict[str, CommandSpec]:
    validator = load_schema_validator("catalog.schema.json")
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise CatalogValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    specs: dict[str, CommandSpec] = {}
    for command_id, entry in doc["commands"].items():
        min_version = FirmwareVersion.parse(entry["min_version"])
        max_version = FirmwareVersion.parse(entry["max_version"]) if "max_version" in entry else None
        if max_version is not None and max_version < min_version:
            raise CatalogValidationError(
                f"{doc['id']}.{command_id}: max_version {max_version} is below min_version {min_version}"
            )
        specs[command_id] = CommandSpec(
            id=command_id,
            command=entry["command"],
            versions=VersionRange(min_version, max_version),
            response=entry.get("response"),
            split_reply=entry.get("split_reply"),
        )
    return specs


def _iter_packaged_catalog_paths() -> list[Traversable]:
    catalog_root = resources.files("babblectl.catalogs")
    return [item for item in catalog_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_catalog_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _catalog_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_catalog() -> CommandCatalog:
    specs: dict[str, CommandSpec] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_catalog_paths(), key=lambda p: p.name):
        specs.update(_build_specs(_read_yaml(path), path))

    for path in _iter_user_catalog_paths():
        for command_id, spec in _build_specs(_read_yaml(path), path).items():
            if command_id in specs:
                warning = f"User catalog {path.name} overrides command '{command_id}'"
                LOGGER.warning(warning)
                warnings.append(warning)
            specs[command_id] = spec

    return CommandCatalog(specs=specs, warnings=tuple(warnings))
