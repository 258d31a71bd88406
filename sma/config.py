"""Configuration loading for sma (.sma.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".sma.yml"

DEFAULT_MANIFEST_PATH = "src/package.xml"
DEFAULT_COMMIT_MESSAGE = "Jenkins updated src/package.xml"
DEFAULT_COMPANION_SUFFIX = "-meta.xml"
DEFAULT_STAGE_DIRECTORY = "sma"


@dataclass(frozen=True)
class CommitterIdentity:
    """Name and email recorded on manifest commits."""

    name: str = "sma"
    email: str = "sma@example.com"


@dataclass
class RollbackConfig:
    """Rollback package settings."""

    enabled: bool = False
    directory: Optional[Path] = None


@dataclass
class SMAConfig:
    """Represents the settings defined in .sma.yml."""

    root: Path
    registry_path: Optional[Path] = None
    manifest_path: str = DEFAULT_MANIFEST_PATH
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    committer: CommitterIdentity = field(default_factory=CommitterIdentity)
    rollback: RollbackConfig = field(default_factory=RollbackConfig)
    update_package: bool = False
    force_initial_build: bool = False
    force_sha: Optional[str] = None
    sha_override: Optional[str] = None
    companion_suffix: str = DEFAULT_COMPANION_SUFFIX
    stage_directory: str = DEFAULT_STAGE_DIRECTORY


def load_config(config_path: Path) -> SMAConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SMAConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    registry = _as_str(data.get("registry"))
    registry_path = root / registry if registry else None

    committer_data = _as_dict(data.get("committer"))
    defaults = CommitterIdentity()
    committer = CommitterIdentity(
        name=_as_str(committer_data.get("name")) or defaults.name,
        email=_as_str(committer_data.get("email")) or defaults.email,
    )

    rollback_data = _as_dict(data.get("rollback"))
    rollback_dir = _as_str(rollback_data.get("directory"))
    rollback = RollbackConfig(
        enabled=_as_bool(rollback_data.get("enabled")) or False,
        directory=root / rollback_dir if rollback_dir else None,
    )

    companion_suffix = _as_str(data.get("companion_suffix")) or DEFAULT_COMPANION_SUFFIX
    if not companion_suffix.strip():
        raise ConfigError("companion_suffix must not be blank")

    return SMAConfig(
        root=root,
        registry_path=registry_path,
        manifest_path=_as_str(data.get("manifest_path")) or DEFAULT_MANIFEST_PATH,
        commit_message=_as_str(data.get("commit_message")) or DEFAULT_COMMIT_MESSAGE,
        committer=committer,
        rollback=rollback,
        update_package=_as_bool(data.get("update_package")) or False,
        force_initial_build=_as_bool(data.get("force_initial_build")) or False,
        force_sha=_as_str(data.get("force_sha")) or None,
        companion_suffix=companion_suffix,
        stage_directory=_as_str(data.get("stage_directory")) or DEFAULT_STAGE_DIRECTORY,
    )


def apply_environment(config: SMAConfig, environ: Mapping[str, str]) -> SMAConfig:
    """Return a copy of ``config`` with build-environment overrides applied."""
    updates: Dict[str, Any] = {}

    sha_override = (environ.get("SMA_SHA_OVERRIDE") or "").strip()
    if sha_override:
        updates["sha_override"] = sha_override

    force_initial = _as_bool(environ.get("SMA_FORCE_INITIAL_BUILD"))
    if force_initial is not None:
        updates["force_initial_build"] = force_initial

    name = environ.get("GIT_COMMITTER_NAME")
    email = environ.get("GIT_COMMITTER_EMAIL")
    if name or email:
        updates["committer"] = CommitterIdentity(
            name=name or config.committer.name,
            email=email or config.committer.email,
        )

    return replace(config, **updates) if updates else config


def select_previous_revision(
    config: SMAConfig, previous: Optional[str], *, force_initial: bool = False
) -> Optional[str]:
    """Pick the revision to diff against; ``None`` requests an initial build."""
    if config.sha_override:
        return config.sha_override
    if config.force_sha:
        return config.force_sha
    if force_initial or config.force_initial_build:
        return None
    return previous or None


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "CommitterIdentity",
    "ConfigError",
    "RollbackConfig",
    "SMAConfig",
    "apply_environment",
    "load_config",
    "select_previous_revision",
]
