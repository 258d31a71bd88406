"""Extension to metadata-type registry loaded from an XML rule table."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..errors import ConfigError
from ..logging import get_logger

DEFAULT_REGISTRY_PATH = Path(__file__).with_name("salesforce_metadata.xml")

_REQUIRED_FIELDS = ("container", "metadata", "destructible", "metaxml")

logger = get_logger("metadata.registry")


@dataclass(frozen=True)
class RegistryEntry:
    """Classification rule for a single file extension."""

    extension: str
    container: str
    metadata_type: str
    destructible: bool
    has_companion: bool


class TypeRegistry:
    """Read-only lookup table keyed by extension (without the leading dot)."""

    def __init__(self, entries: Mapping[str, RegistryEntry], api_version: str) -> None:
        self._entries: Mapping[str, RegistryEntry] = MappingProxyType(dict(entries))
        self._api_version = api_version

    @property
    def api_version(self) -> str:
        return self._api_version

    def lookup(self, extension: str) -> Optional[RegistryEntry]:
        return self._entries.get(extension)

    def __contains__(self, extension: object) -> bool:
        return extension in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def load_registry(path: Path | None = None) -> TypeRegistry:
    """Parse the registry resource; ``path`` defaults to the bundled table."""
    source = Path(path) if path is not None else DEFAULT_REGISTRY_PATH
    try:
        payload = source.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Type registry {source} could not be read: {exc}") from exc
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise ConfigError(f"Type registry {source} is not well-formed XML: {exc}") from exc

    version_element = root.find("version")
    api_version = version_element.get("API", "").strip() if version_element is not None else ""
    if not api_version:
        raise ConfigError(f"Type registry {source} is missing <version API=...>")

    entries: Dict[str, RegistryEntry] = {}
    for element in root.iter("extension"):
        name = (element.get("name") or "").strip()
        if not name:
            raise ConfigError(f"Type registry {source} has an <extension> without a name")
        values: Dict[str, str] = {}
        for tag in _REQUIRED_FIELDS:
            child = element.find(tag)
            if child is None or child.text is None:
                raise ConfigError(f"Extension '{name}' in {source} is missing <{tag}>")
            values[tag] = child.text.strip()
        if name in entries:
            # The first rule for an extension wins.
            logger.debug("Ignoring duplicate registry rule for extension %s", name)
            continue
        entries[name] = RegistryEntry(
            extension=name,
            container=values["container"],
            metadata_type=values["metadata"],
            destructible=_parse_flag(values["destructible"]),
            has_companion=_parse_flag(values["metaxml"]),
        )

    logger.debug("Loaded %d registry rules (API %s) from %s", len(entries), api_version, source)
    return TypeRegistry(entries, api_version)


def _parse_flag(text: str) -> bool:
    return text.strip().lower() == "true"


__all__ = ["DEFAULT_REGISTRY_PATH", "RegistryEntry", "TypeRegistry", "load_registry"]
