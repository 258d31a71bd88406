"""Builds package manifests from lists of changed repository paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from ..errors import NOT_DESTRUCTIBLE, UNRECOGNIZED, ClassificationIssue
from ..logging import get_logger
from ..metadata.companion import DEFAULT_RULE, CompanionRule
from ..metadata.descriptor import MetadataDescriptor, classify
from ..metadata.registry import TypeRegistry
from .builder import ManifestBuilder

logger = get_logger("manifest")


@dataclass
class SynthesisResult:
    """Serialised manifest plus the descriptors it lists."""

    document: bytes
    accepted: List[MetadataDescriptor] = field(default_factory=list)
    issues: List[ClassificationIssue] = field(default_factory=list)
    types: Dict[str, List[str]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.accepted


class ManifestSynthesizer:
    """Classifies paths through the type registry and groups them by metadata type."""

    def __init__(
        self, registry: TypeRegistry, *, companion_rule: CompanionRule = DEFAULT_RULE
    ) -> None:
        self.registry = registry
        self._rule = companion_rule

    def synthesize(self, paths: Sequence[str], destructive: bool = False) -> SynthesisResult:
        builder = ManifestBuilder(self.registry.api_version)
        accepted: List[MetadataDescriptor] = []
        seen: Set[str] = set()
        issues: List[ClassificationIssue] = []

        for path in paths:
            descriptor = classify(path, self.registry)
            if not descriptor.valid:
                if self._rule.is_companion_path(path):
                    # Listed through its primary artifact.
                    continue
                message = f"{descriptor.full_name} is not a valid member of the API"
                logger.warning(message)
                issues.append(ClassificationIssue(path, UNRECOGNIZED, message))
                continue

            logger.debug(
                "Member %s (%s) in %s as %s",
                descriptor.member,
                descriptor.extension,
                descriptor.path or ".",
                descriptor.metadata_type,
            )

            if destructive and not descriptor.destructible:
                message = f"{descriptor.full_name} cannot be deleted via the API"
                logger.warning(message)
                issues.append(ClassificationIssue(path, NOT_DESTRUCTIBLE, message))
                continue

            # Same-named members in different folders share one <members> entry
            # but are each staged and restored.
            builder.add(descriptor.metadata_type, descriptor.member)
            if descriptor.repo_path in seen:
                logger.debug("%s already accepted", descriptor.repo_path)
                continue
            seen.add(descriptor.repo_path)
            accepted.append(descriptor)

        return SynthesisResult(
            document=builder.serialize(),
            accepted=accepted,
            issues=issues,
            types=builder.types(),
        )


__all__ = ["ManifestSynthesizer", "SynthesisResult"]
