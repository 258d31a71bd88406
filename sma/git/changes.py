"""Classification of repository changes between two revisions."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence

from ..config import DEFAULT_COMMIT_MESSAGE, DEFAULT_MANIFEST_PATH, CommitterIdentity
from ..logging import get_logger
from ..manifest.builder import write_manifest
from ..metadata.companion import DEFAULT_RULE, CompanionRule
from .repository import ChangeKind, GitRepository

logger = get_logger("changes")


class ManifestRenderer(Protocol):
    def synthesize(self, paths: Sequence[str], destructive: bool = False): ...


class OrderedPathSet:
    """Insertion-ordered collection of paths where the first occurrence wins."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._items: List[str] = []
        self._seen: set[str] = set()
        for path in paths:
            self.add(path)

    def add(self, path: str) -> bool:
        if path in self._seen:
            return False
        self._seen.add(path)
        self._items.append(path)
        return True

    def to_list(self) -> List[str]:
        return list(self._items)

    def __contains__(self, path: object) -> bool:
        return path in self._seen

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class ChangeSetResolver:
    """Computes additions, deletions and modifications between two revisions.

    Without a previous revision the resolver runs in initial mode and every
    path of the current revision counts as an addition. Companion descriptor
    files are folded onto their primary artifact in every set except for the
    raw path recorded for an added file.
    """

    def __init__(
        self,
        repository: GitRepository,
        current: str,
        previous: Optional[str] = None,
        *,
        companion_rule: CompanionRule = DEFAULT_RULE,
    ) -> None:
        self.repository = repository
        self.current = current
        self.previous = previous
        self._rule = companion_rule
        self._additions = OrderedPathSet()
        self._deletions = OrderedPathSet()
        self._modifications_old = OrderedPathSet()
        self._modifications_new = OrderedPathSet()

        repository.resolve(current)
        if previous is None:
            for path in self.list_all_paths(current):
                self._additions.add(path)
            logger.debug("Initial build: %d paths at %s", len(self._additions), current)
        else:
            repository.resolve(previous)
            self._determine_changes()

    @property
    def is_initial(self) -> bool:
        return self.previous is None

    def additions(self) -> List[str]:
        return self._additions.to_list()

    def deletions(self) -> List[str]:
        return self._deletions.to_list()

    def modifications_old(self) -> List[str]:
        return self._modifications_old.to_list()

    def modifications_new(self) -> List[str]:
        return self._modifications_new.to_list()

    def new_change_set(self) -> List[str]:
        """Additions followed by modified paths; the full listing in initial mode."""
        if self.is_initial:
            return self.list_all_paths(self.current)
        return self.additions() + self.modifications_new()

    def old_change_set(self) -> List[str]:
        return self.deletions() + self.modifications_old()

    def list_all_paths(self, revision: Optional[str] = None) -> List[str]:
        return list(self.repository.walk(revision or self.current))

    def fetch_historical_file(self, revision: str, path: str) -> bytes:
        """Return the bytes of ``path`` at ``revision``; raises NotFoundError when absent."""
        object_id = self.repository.object_id(revision, path)
        return self.repository.open_blob(object_id)

    def commit_manifest_update(
        self,
        renderer: ManifestRenderer,
        committer: CommitterIdentity,
        *,
        paths: Optional[Sequence[str]] = None,
        manifest_path: str = DEFAULT_MANIFEST_PATH,
        message: str = DEFAULT_COMMIT_MESSAGE,
    ) -> bool:
        """Regenerate the repository manifest and commit it when membership changed."""
        if not self._additions and not self._deletions:
            logger.debug("No additions or deletions; repository manifest left untouched")
            return False

        listing = list(paths) if paths is not None else self.list_all_paths(self.current)
        result = renderer.synthesize(listing, False)
        target = Path(self.repository.root) / manifest_path
        write_manifest(target, result.document)

        self.repository.stage(manifest_path)
        if not self.repository.has_staged_changes(manifest_path):
            logger.info("%s already up to date; nothing to commit", manifest_path)
            return False
        self.repository.commit(committer.name, committer.email, message)
        logger.info("Committed refreshed %s as %s", manifest_path, committer.name)
        return True

    # ------------------------------------------------------------------
    # Internals

    def _determine_changes(self) -> None:
        previous = self.previous or ""
        fold = self._rule.primary_path_of
        for entry in self.repository.diff(previous, self.current):
            if entry.change_kind is ChangeKind.DELETE and entry.old_path:
                self._deletions.add(fold(entry.old_path))
            elif entry.change_kind is ChangeKind.ADD and entry.new_path:
                self._additions.add(entry.new_path)
                self._additions.add(fold(entry.new_path))
            elif entry.change_kind is ChangeKind.MODIFY and entry.new_path and entry.old_path:
                self._modifications_new.add(fold(entry.new_path))
                self._modifications_old.add(fold(entry.old_path))
        logger.debug(
            "Resolved %s..%s: %d added, %d deleted, %d modified",
            self.previous,
            self.current,
            len(self._additions),
            len(self._deletions),
            len(self._modifications_new),
        )


def resolve_changes(
    repo_path: str | Path,
    current: str,
    previous: Optional[str] = None,
    *,
    runner: Callable[..., str | bytes] | None = None,
    companion_rule: CompanionRule = DEFAULT_RULE,
) -> ChangeSetResolver:
    """Open the repository at ``repo_path`` and resolve the changes for one build."""
    repository = GitRepository(repo_path, runner=runner)
    return ChangeSetResolver(repository, current, previous, companion_rule=companion_rule)


__all__ = ["ChangeSetResolver", "OrderedPathSet", "resolve_changes"]
