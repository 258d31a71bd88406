"""Tests for sma.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from sma.config import (
    CommitterIdentity,
    SMAConfig,
    apply_environment,
    load_config,
    select_previous_revision,
)
from sma.errors import ConfigError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, SMAConfig)
    assert config.root == tmp_path.resolve()
    assert config.registry_path is None
    assert config.manifest_path == "src/package.xml"
    assert config.commit_message == "Jenkins updated src/package.xml"
    assert config.committer == CommitterIdentity()
    assert config.rollback.enabled is False
    assert config.update_package is False
    assert config.companion_suffix == "-meta.xml"
    assert config.stage_directory == "sma"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".sma.yml"
    config_file.write_text(
        """
registry: config/metadata.xml
manifest_path: force-app/package.xml
commit_message: "ci: refresh package.xml"
update_package: true
force_initial_build: "yes"
force_sha: 1a2b3c4
companion_suffix: "-meta.xml"
stage_directory: build/stage
committer:
  name: jenkins
  email: jenkins@example.com
rollback:
  enabled: true
  directory: ../rollbacks
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.registry_path == tmp_path.resolve() / "config" / "metadata.xml"
    assert config.manifest_path == "force-app/package.xml"
    assert config.commit_message == "ci: refresh package.xml"
    assert config.update_package is True
    assert config.force_initial_build is True
    assert config.force_sha == "1a2b3c4"
    assert config.stage_directory == "build/stage"
    assert config.committer == CommitterIdentity("jenkins", "jenkins@example.com")
    assert config.rollback.enabled is True
    assert config.rollback.directory == tmp_path.resolve() / ".." / "rollbacks"


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / ".sma.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".sma.yml").write_text("rollback: [unterminated\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_apply_environment_overrides(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    updated = apply_environment(
        config,
        {
            "SMA_SHA_OVERRIDE": "cafebabe",
            "SMA_FORCE_INITIAL_BUILD": "true",
            "GIT_COMMITTER_NAME": "builder",
        },
    )

    assert updated.sha_override == "cafebabe"
    assert updated.force_initial_build is True
    assert updated.committer == CommitterIdentity("builder", "sma@example.com")
    assert config.sha_override is None
    assert apply_environment(config, {}) is config


def test_select_previous_revision_precedence(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert select_previous_revision(config, "prev") == "prev"
    assert select_previous_revision(config, None) is None
    assert select_previous_revision(config, "prev", force_initial=True) is None

    config.force_sha = "forced"
    assert select_previous_revision(config, "prev", force_initial=True) == "forced"

    config.sha_override = "override"
    assert select_previous_revision(config, "prev") == "override"
