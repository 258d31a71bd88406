"""In-memory package manifest and its XML form."""

from __future__ import annotations

import os
import re
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

MANIFEST_NAMESPACE = "http://soap.sforce.com/2006/04/metadata"


class ManifestBuilder:
    """Ordered mapping of metadata type to members, serialised as a Package document."""

    def __init__(self, version: str) -> None:
        self.version = version
        self._types: Dict[str, List[str]] = {}

    def add(self, metadata_type: str, member: str) -> bool:
        """Record ``member`` under ``metadata_type``; returns False when already present."""
        members = self._types.setdefault(metadata_type, [])
        if member in members:
            return False
        members.append(member)
        return True

    def has_type(self, metadata_type: str) -> bool:
        return metadata_type in self._types

    def types(self) -> Dict[str, List[str]]:
        return {name: list(members) for name, members in self._types.items()}

    def to_element(self) -> ET.Element:
        root = ET.Element("Package", {"xmlns": MANIFEST_NAMESPACE})
        for name, members in self._types.items():
            types_node = ET.SubElement(root, "types")
            ET.SubElement(types_node, "name").text = name
            for member in members:
                ET.SubElement(types_node, "members").text = member
        ET.SubElement(root, "version").text = self.version
        return root

    def serialize(self) -> bytes:
        root = self.to_element()
        ET.indent(root, space="    ")
        return ET.tostring(root, encoding="UTF-8", xml_declaration=True) + b"\n"


@dataclass
class ManifestContents:
    """Parsed view of a Package document."""

    types: Dict[str, List[str]] = field(default_factory=dict)
    version: str = ""


def parse_manifest(document: bytes | str) -> ManifestContents:
    """Read a Package document back into its type to members mapping."""
    root = ET.fromstring(document)
    match = re.match(r"\{(.+)}", root.tag)
    prefix = f"{{{match.group(1)}}}" if match else ""

    contents = ManifestContents()
    for types_node in root.findall(f"{prefix}types"):
        name = (types_node.findtext(f"{prefix}name") or "").strip()
        members = [
            (member.text or "").strip() for member in types_node.findall(f"{prefix}members")
        ]
        contents.types.setdefault(name, []).extend(members)
    contents.version = (root.findtext(f"{prefix}version") or "").strip()
    return contents


def write_manifest(path: Path, document: bytes) -> Path:
    """Write ``document`` to ``path`` in one step through a sibling temp file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(document)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


__all__ = ["MANIFEST_NAMESPACE", "ManifestBuilder", "ManifestContents", "parse_manifest", "write_manifest"]
