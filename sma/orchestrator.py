"""Pipeline orchestration for build/changes/manifest flows."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .config import SMAConfig, apply_environment, load_config, select_previous_revision
from .errors import SMAError
from .git.changes import ChangeSetResolver, resolve_changes
from .logging import get_logger
from .manifest.synthesizer import ManifestSynthesizer, SynthesisResult
from .metadata.companion import CompanionRule
from .metadata.descriptor import MetadataDescriptor
from .metadata.registry import DEFAULT_REGISTRY_PATH, TypeRegistry, load_registry
from .rollback import RollbackBuilder
from .staging import DeploymentPackage, stage_deployment


@dataclass
class BuildOutcome:
    """Result of a build run."""

    current: str
    previous: Optional[str]
    package: DeploymentPackage
    rollback_archive: Optional[Path] = None
    manifest_committed: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def members(self) -> List[MetadataDescriptor]:
        return list(self.package.members)

    @property
    def apex_changes_present(self) -> bool:
        return self.package.apex_changes_present


class Orchestrator:
    """Coordinates change resolution, manifest synthesis, staging and rollback."""

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        runner: Callable[..., str | bytes] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._registry_override = registry
        self._registries: Dict[Path, TypeRegistry] = {}
        self._runner = runner
        self._environ = environ if environ is not None else os.environ
        self.logger = get_logger("orchestrator")

    def load_config(self, repo_path: Path) -> SMAConfig:
        return apply_environment(load_config(repo_path), self._environ)

    def registry_for(self, config: SMAConfig) -> TypeRegistry:
        """Load the configured registry once per process and reuse it."""
        if self._registry_override is not None:
            return self._registry_override
        source = config.registry_path or DEFAULT_REGISTRY_PATH
        registry = self._registries.get(source)
        if registry is None:
            registry = load_registry(source)
            self._registries[source] = registry
            self.logger.debug("Type registry %s ready (API %s)", source, registry.api_version)
        return registry

    def synthesizer_for(self, config: SMAConfig) -> ManifestSynthesizer:
        return ManifestSynthesizer(
            self.registry_for(config), companion_rule=CompanionRule(config.companion_suffix)
        )

    def resolve(
        self,
        path: str,
        current: str,
        previous: Optional[str] = None,
        *,
        force_initial: bool = False,
        config: SMAConfig | None = None,
    ) -> ChangeSetResolver:
        """Resolve the change set for ``current`` against the selected previous revision."""
        repo_path = Path(path).expanduser().resolve()
        config = config or self.load_config(repo_path)
        effective_previous = select_previous_revision(config, previous, force_initial=force_initial)
        if effective_previous is None:
            self.logger.info("Resolving initial build at %s", current)
        else:
            self.logger.info("Resolving changes %s..%s", effective_previous, current)
        return resolve_changes(
            repo_path,
            current,
            effective_previous,
            runner=self._runner,
            companion_rule=CompanionRule(config.companion_suffix),
        )

    def run_build(
        self,
        path: str,
        current: str,
        previous: Optional[str] = None,
        *,
        rollback_dir: Optional[Path] = None,
        rollback_name: Optional[str] = None,
        update_package: Optional[bool] = None,
        force_initial: bool = False,
    ) -> BuildOutcome:
        """Stage a deployment for ``current`` and optionally its rollback and manifest commit."""
        repo_path = Path(path).expanduser().resolve()
        self.logger.info("Starting build for %s", repo_path)
        config = self.load_config(repo_path)
        synthesizer = self.synthesizer_for(config)
        rule = CompanionRule(config.companion_suffix)

        resolver = self.resolve(
            str(repo_path), current, previous, force_initial=force_initial, config=config
        )
        package = stage_deployment(
            resolver,
            synthesizer,
            repo_path,
            repo_path / config.stage_directory,
            companion_rule=rule,
        )
        outcome = BuildOutcome(
            current=current,
            previous=resolver.previous,
            package=package,
            warnings=[issue.message for issue in package.issues],
        )
        self.logger.info("Created deployment package with %d members", len(package.members))

        target_dir = rollback_dir or (config.rollback.directory if config.rollback.enabled else None)
        if target_dir is not None:
            if resolver.is_initial:
                self.logger.info("Initial build; skipping rollback package")
            else:
                rollback = RollbackBuilder(synthesizer, companion_rule=rule)
                outcome.rollback_archive = rollback.build(
                    resolver, Path(target_dir), archive_name=rollback_name
                )

        should_update = config.update_package if update_package is None else update_package
        if should_update:
            outcome.manifest_committed = resolver.commit_manifest_update(
                synthesizer,
                config.committer,
                manifest_path=config.manifest_path,
                message=config.commit_message,
            )
            if outcome.manifest_committed:
                self.logger.info("Updated repository %s", config.manifest_path)

        return outcome

    def synthesize(
        self, paths: Sequence[str], *, destructive: bool = False, path: str = "."
    ) -> SynthesisResult:
        repo_path = Path(path).expanduser().resolve()
        if not repo_path.is_dir():
            raise SMAError(f"{path} is not a directory")
        config = self.load_config(repo_path)
        return self.synthesizer_for(config).synthesize(paths, destructive)


__all__ = ["BuildOutcome", "Orchestrator"]
