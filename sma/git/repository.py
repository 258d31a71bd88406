"""Read/write access to a git history store through the git CLI."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Mapping, Optional

from ..errors import GitCommandError, NotFoundError
from ..logging import get_logger

logger = get_logger("git")


class ChangeKind(str, Enum):
    ADD = "ADD"
    DELETE = "DELETE"
    MODIFY = "MODIFY"


# Renames and copies are disabled at the diff-tree call; a type change is a modification.
_STATUS_KINDS = {
    "A": ChangeKind.ADD,
    "D": ChangeKind.DELETE,
    "M": ChangeKind.MODIFY,
    "T": ChangeKind.MODIFY,
}


@dataclass(frozen=True)
class DiffEntry:
    """One path-level change between two trees."""

    change_kind: ChangeKind
    old_path: Optional[str]
    new_path: Optional[str]


class GitRepository:
    """Thin wrapper over the git plumbing commands the resolver needs."""

    def __init__(self, root: str | Path, runner: Callable[..., str | bytes] | None = None) -> None:
        self.root = Path(root)
        if not (self.root / ".git").exists():
            raise NotFoundError(f"{root} is not a Git repository")
        self._runner = runner or self._default_runner

    def resolve(self, revision: str) -> str:
        """Return the root tree id of ``revision``."""
        try:
            output = self._git(["rev-parse", "--verify", "--quiet", f"{revision}^{{tree}}"])
        except GitCommandError as exc:
            raise NotFoundError(f"Revision '{revision}' does not exist") from exc
        tree_id = str(output).strip()
        if not tree_id:
            raise NotFoundError(f"Revision '{revision}' does not exist")
        return tree_id

    def walk(self, revision: str) -> Iterator[str]:
        """Yield every blob path of ``revision`` in tree-walk order."""
        output = self._git(["ls-tree", "-r", "-z", "--full-tree", revision])
        for record in _split_records(str(output)):
            header, _, path = record.partition("\t")
            parts = header.split()
            if len(parts) >= 2 and parts[1] == "blob":
                yield path

    def diff(self, old_revision: str, new_revision: str) -> List[DiffEntry]:
        """Return the changes between two revisions in path order."""
        output = self._git(
            [
                "diff-tree",
                "-r",
                "-z",
                "--no-renames",
                "--name-status",
                old_revision,
                new_revision,
            ]
        )
        fields = _split_records(str(output))
        entries: List[DiffEntry] = []
        index = 0
        while index + 1 < len(fields):
            status, path = fields[index], fields[index + 1]
            index += 2
            kind = _STATUS_KINDS.get(status[:1])
            if kind is None:
                logger.debug("Ignoring diff status %s for %s", status, path)
                continue
            if kind is ChangeKind.ADD:
                entries.append(DiffEntry(kind, None, path))
            elif kind is ChangeKind.DELETE:
                entries.append(DiffEntry(kind, path, None))
            else:
                entries.append(DiffEntry(kind, path, path))
        return entries

    def object_id(self, revision: str, path: str) -> str:
        """Return the blob id stored for ``path`` at ``revision``."""
        output = self._git(["ls-tree", "-z", "--full-tree", revision, "--", path])
        for record in _split_records(str(output)):
            header, _, found = record.partition("\t")
            parts = header.split()
            if found == path and len(parts) >= 3 and parts[1] == "blob":
                return parts[2]
        raise NotFoundError(f"'{path}' does not exist at revision {revision}")

    def open_blob(self, object_id: str) -> bytes:
        output = self._git(["cat-file", "blob", object_id], binary=True)
        return output if isinstance(output, bytes) else str(output).encode("utf-8")

    def stage(self, path: str) -> None:
        self._git(["add", "--", path], capture_output=False)

    def has_staged_changes(self, path: str) -> bool:
        """Return True when the index differs from HEAD for ``path``."""
        try:
            self._git(["diff", "--cached", "--quiet", "--", path], capture_output=False)
        except GitCommandError as exc:
            if exc.returncode == 1:
                return True
            raise
        return False

    def commit(self, author_name: str, author_email: str, message: str) -> None:
        env = os.environ.copy()
        env["GIT_AUTHOR_NAME"] = author_name
        env["GIT_AUTHOR_EMAIL"] = author_email
        env["GIT_COMMITTER_NAME"] = author_name
        env["GIT_COMMITTER_EMAIL"] = author_email
        self._git(["commit", "-m", message], env=env, capture_output=False)

    # ------------------------------------------------------------------
    # Internals

    def _git(
        self,
        args: Iterable[str],
        *,
        env: Mapping[str, str] | None = None,
        capture_output: bool = True,
        binary: bool = False,
    ) -> str | bytes:
        command = ["git", *args]
        logger.debug("Running %s", " ".join(command))
        return self._runner(
            command, cwd=self.root, env=env, capture_output=capture_output, binary=binary
        )

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        capture_output: bool = False,
        binary: bool = False,
    ) -> str | bytes:
        command = list(args)
        completed = subprocess.run(
            command,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=not binary,
            check=False,
        )
        if completed.returncode != 0:
            stderr = completed.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise GitCommandError(command, completed.returncode, stderr or "")
        if not capture_output:
            return b"" if binary else ""
        return completed.stdout


def _split_records(output: str) -> List[str]:
    return [record for record in output.split("\0") if record]


__all__ = ["ChangeKind", "DiffEntry", "GitRepository"]
