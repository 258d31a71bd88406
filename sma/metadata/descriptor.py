"""Metadata descriptors produced by classifying repository paths."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from .registry import TypeRegistry

INVALID_TYPE = "Invalid"


@dataclass(frozen=True)
class MetadataDescriptor:
    """Typed view of one repository path."""

    extension: str
    container: str
    member: str
    metadata_type: str
    path: str
    destructible: bool
    valid: bool
    has_companion: bool

    @property
    def full_name(self) -> str:
        return f"{self.member}.{self.extension}" if self.extension else self.member

    @property
    def repo_path(self) -> str:
        """Repository-relative path of the artifact file."""
        return posixpath.join(self.path, self.full_name) if self.path else self.full_name


def classify(path: str, registry: TypeRegistry) -> MetadataDescriptor:
    """Build a descriptor for ``path``; unknown extensions yield an Invalid descriptor."""
    normalized = path.replace("\\", "/")
    directory, filename = posixpath.split(normalized)
    member, dot, extension = filename.rpartition(".")
    if not dot:
        member, extension = filename, ""

    entry = registry.lookup(extension) if extension else None
    if entry is None:
        return MetadataDescriptor(
            extension=extension,
            container="",
            member=member,
            metadata_type=INVALID_TYPE,
            path=directory,
            destructible=False,
            valid=False,
            has_companion=False,
        )
    return MetadataDescriptor(
        extension=extension,
        container=entry.container,
        member=member,
        metadata_type=entry.metadata_type,
        path=directory,
        destructible=entry.destructible,
        valid=True,
        has_companion=entry.has_companion,
    )


__all__ = ["INVALID_TYPE", "MetadataDescriptor", "classify"]
