"""Error taxonomy shared by the change-set and manifest pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class SMAError(RuntimeError):
    """Base class for failures that abort a whole operation."""


class ConfigError(SMAError):
    """Raised when the type registry or .sma.yml cannot be loaded."""


class NotFoundError(SMAError):
    """Raised when a revision or path does not exist in the history store."""


class IntegrityError(SMAError):
    """Raised when a rollback stage cannot be completed."""


class GitCommandError(SMAError):
    """Raised when a git subprocess exits with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"`{' '.join(self.command)}` exited with status {returncode}{detail}")


UNRECOGNIZED = "unrecognized"
NOT_DESTRUCTIBLE = "not_destructible"


@dataclass(frozen=True)
class ClassificationIssue:
    """A recoverable per-path outcome; the path is dropped from the manifest."""

    path: str
    kind: str
    message: str


__all__ = [
    "ClassificationIssue",
    "ConfigError",
    "GitCommandError",
    "IntegrityError",
    "NOT_DESTRUCTIBLE",
    "NotFoundError",
    "SMAError",
    "UNRECOGNIZED",
]
