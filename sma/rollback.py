"""Rollback packages that reverse the change deployed by a build."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import IntegrityError, NotFoundError, SMAError
from .git.changes import ChangeSetResolver
from .logging import get_logger
from .manifest.builder import write_manifest
from .manifest.synthesizer import ManifestSynthesizer, SynthesisResult
from .metadata.companion import DEFAULT_RULE, CompanionRule
from .metadata.descriptor import MetadataDescriptor
from .staging import DESTRUCTIVE_MANIFEST, MANIFEST_DIRECTORY, PACKAGE_MANIFEST, member_paths, prepare_stage

DEFAULT_ARCHIVE_NAME = "rollback"

logger = get_logger("rollback")


@dataclass
class RollbackStage:
    """Unarchived rollback package: inverse manifests plus restored files."""

    stage_dir: Path
    restore: SynthesisResult
    destroy: SynthesisResult
    restored_files: List[Path] = field(default_factory=list)

    @property
    def restored_members(self) -> List[MetadataDescriptor]:
        return list(self.restore.accepted)

    @property
    def destroyed_members(self) -> List[MetadataDescriptor]:
        return list(self.destroy.accepted)


class RollbackBuilder:
    """Inverts a resolved change and restores the previous revision's files."""

    def __init__(
        self, synthesizer: ManifestSynthesizer, *, companion_rule: CompanionRule = DEFAULT_RULE
    ) -> None:
        self.synthesizer = synthesizer
        self._rule = companion_rule

    def prepare(self, resolver: ChangeSetResolver, stage_dir: Path) -> RollbackStage:
        """Write the inverse manifests and historical files into ``stage_dir``.

        Additions of the forward change become the destructive manifest;
        deletions and modified paths are restored from the previous revision.
        Every historical file is read before anything is written, so a missing
        file leaves no stage behind.
        """
        previous = resolver.previous
        if previous is None:
            raise SMAError("A rollback needs a previous revision to restore from")

        destroy = self.synthesizer.synthesize(resolver.additions(), True)
        restore = self.synthesizer.synthesize(resolver.old_change_set(), False)

        contents: Dict[str, bytes] = {}
        for descriptor in restore.accepted:
            for relative in member_paths(descriptor, self._rule):
                try:
                    contents[relative] = resolver.fetch_historical_file(previous, relative)
                except NotFoundError as exc:
                    raise IntegrityError(
                        f"Did not find expected file '{relative}' at revision {previous}"
                    ) from exc

        stage_dir = prepare_stage(stage_dir)
        stage = RollbackStage(stage_dir=stage_dir, restore=restore, destroy=destroy)
        for relative, payload in contents.items():
            target = stage_dir / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
            stage.restored_files.append(target)

        write_manifest(stage_dir / MANIFEST_DIRECTORY / PACKAGE_MANIFEST, restore.document)
        if destroy.accepted:
            write_manifest(stage_dir / MANIFEST_DIRECTORY / DESTRUCTIVE_MANIFEST, destroy.document)

        logger.debug(
            "Rollback stage %s: %d restored, %d destroyed",
            stage_dir,
            len(restore.accepted),
            len(destroy.accepted),
        )
        return stage

    def build(
        self,
        resolver: ChangeSetResolver,
        destination_dir: Path,
        *,
        archive_name: Optional[str] = None,
    ) -> Path:
        """Prepare the rollback stage, zip it and return the archive path."""
        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)
        stage_dir = destination_dir / "rollback"
        self.prepare(resolver, stage_dir)

        base_name = destination_dir / (archive_name or DEFAULT_ARCHIVE_NAME)
        archive = Path(shutil.make_archive(str(base_name), "zip", root_dir=str(stage_dir)))
        shutil.rmtree(stage_dir)
        logger.info("Created rollback package %s", archive)
        return archive


def build_rollback(
    resolver: ChangeSetResolver,
    synthesizer: ManifestSynthesizer,
    destination_dir: Path,
    *,
    archive_name: Optional[str] = None,
    companion_rule: CompanionRule = DEFAULT_RULE,
) -> Path:
    """Build and archive the rollback package for ``resolver`` in ``destination_dir``."""
    builder = RollbackBuilder(synthesizer, companion_rule=companion_rule)
    return builder.build(resolver, destination_dir, archive_name=archive_name)


__all__ = ["RollbackBuilder", "RollbackStage", "build_rollback"]
