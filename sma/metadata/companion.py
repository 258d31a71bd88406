"""Folding of companion descriptor files onto their primary artifact."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

DEFAULT_SUFFIX = "-meta.xml"


@dataclass(frozen=True)
class CompanionRule:
    """Recognises sidecar files such as ``Foo.cls-meta.xml`` next to ``Foo.cls``."""

    suffix: str = DEFAULT_SUFFIX

    def is_companion_path(self, path: str) -> bool:
        filename = posixpath.basename(path)
        return len(filename) > len(self.suffix) and filename.endswith(self.suffix)

    def primary_path_of(self, path: str) -> str:
        if not self.is_companion_path(path):
            return path
        return path[: -len(self.suffix)]

    def companion_path_of(self, path: str) -> str:
        return f"{self.primary_path_of(path)}{self.suffix}"


DEFAULT_RULE = CompanionRule()


def is_companion_path(path: str) -> bool:
    return DEFAULT_RULE.is_companion_path(path)


def primary_path_of(path: str) -> str:
    return DEFAULT_RULE.primary_path_of(path)


__all__ = ["CompanionRule", "DEFAULT_RULE", "DEFAULT_SUFFIX", "is_companion_path", "primary_path_of"]
