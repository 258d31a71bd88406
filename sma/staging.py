"""Deployment stage assembly: manifests plus copies of the changed members."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import ClassificationIssue, NotFoundError
from .git.changes import ChangeSetResolver
from .logging import get_logger
from .manifest.builder import write_manifest
from .manifest.synthesizer import ManifestSynthesizer
from .metadata.companion import DEFAULT_RULE, CompanionRule
from .metadata.descriptor import MetadataDescriptor

PACKAGE_MANIFEST = "package.xml"
DESTRUCTIVE_MANIFEST = "destructiveChanges.xml"
MANIFEST_DIRECTORY = "src"

APEX_TYPES = frozenset({"ApexClass", "ApexTrigger"})

logger = get_logger("staging")


@dataclass
class DeploymentPackage:
    """A staged deployment ready to hand to the deploy runner."""

    stage_dir: Path
    package_manifest: Path
    destructive_manifest: Optional[Path] = None
    members: List[MetadataDescriptor] = field(default_factory=list)
    destructions: List[MetadataDescriptor] = field(default_factory=list)
    issues: List[ClassificationIssue] = field(default_factory=list)

    @property
    def source_dir(self) -> Path:
        return self.stage_dir / MANIFEST_DIRECTORY

    @property
    def apex_changes_present(self) -> bool:
        return apex_changes_present(self.members)


def apex_changes_present(descriptors: Iterable[MetadataDescriptor]) -> bool:
    """Return True when any descriptor is Apex code, which requires unit tests to run."""
    return any(descriptor.metadata_type in APEX_TYPES for descriptor in descriptors)


def prepare_stage(stage_dir: Path) -> Path:
    """Create an empty stage directory, discarding a previous one."""
    stage_dir = Path(stage_dir)
    if stage_dir.exists():
        shutil.rmtree(stage_dir)
    (stage_dir / MANIFEST_DIRECTORY).mkdir(parents=True)
    return stage_dir


def member_paths(
    descriptor: MetadataDescriptor, companion_rule: CompanionRule = DEFAULT_RULE
) -> List[str]:
    """Repository paths that make up ``descriptor``, companion file included."""
    paths = [descriptor.repo_path]
    if descriptor.has_companion:
        paths.append(companion_rule.companion_path_of(descriptor.repo_path))
    return paths


def replicate_members(
    descriptors: Iterable[MetadataDescriptor],
    source_root: Path,
    destination: Path,
    *,
    companion_rule: CompanionRule = DEFAULT_RULE,
) -> List[Path]:
    """Copy each member (and its companion file) from ``source_root`` into ``destination``."""
    copied: List[Path] = []
    for descriptor in descriptors:
        for relative in member_paths(descriptor, companion_rule):
            source = Path(source_root) / relative
            if not source.is_file():
                raise NotFoundError(f"Expected file '{relative}' is missing from {source_root}")
            target = Path(destination) / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied.append(target)
    logger.debug("Replicated %d files into %s", len(copied), destination)
    return copied


def stage_deployment(
    resolver: ChangeSetResolver,
    synthesizer: ManifestSynthesizer,
    work_tree: Path,
    stage_dir: Path,
    *,
    companion_rule: CompanionRule = DEFAULT_RULE,
) -> DeploymentPackage:
    """Write package.xml (and destructiveChanges.xml) and copy the members to deploy."""
    updates = synthesizer.synthesize(resolver.new_change_set(), False)
    deletions = resolver.deletions()
    destructions = synthesizer.synthesize(deletions, True) if deletions else None

    stage_dir = prepare_stage(stage_dir)
    package = DeploymentPackage(
        stage_dir=stage_dir,
        package_manifest=write_manifest(
            stage_dir / MANIFEST_DIRECTORY / PACKAGE_MANIFEST, updates.document
        ),
        members=list(updates.accepted),
        issues=list(updates.issues),
    )
    if destructions is not None and destructions.accepted:
        package.destructive_manifest = write_manifest(
            stage_dir / MANIFEST_DIRECTORY / DESTRUCTIVE_MANIFEST, destructions.document
        )
        package.destructions = list(destructions.accepted)
    if destructions is not None:
        package.issues.extend(destructions.issues)

    replicate_members(package.members, work_tree, stage_dir, companion_rule=companion_rule)
    logger.info(
        "Staged %d members (%d destructive) in %s",
        len(package.members),
        len(package.destructions),
        stage_dir,
    )
    return package


__all__ = [
    "APEX_TYPES",
    "DESTRUCTIVE_MANIFEST",
    "DeploymentPackage",
    "MANIFEST_DIRECTORY",
    "PACKAGE_MANIFEST",
    "apex_changes_present",
    "member_paths",
    "prepare_stage",
    "replicate_members",
    "stage_deployment",
]
