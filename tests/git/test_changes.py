"""Tests for change-set resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from sma.config import CommitterIdentity
from sma.errors import NotFoundError
from sma.git.changes import ChangeSetResolver, OrderedPathSet
from sma.manifest.builder import parse_manifest
from sma.manifest.synthesizer import ManifestSynthesizer
from sma.metadata.companion import CompanionRule
from tests._fixtures.fake_repository import FakeRepository, added, deleted, modified


def test_ordered_path_set_keeps_first_occurrence() -> None:
    paths = OrderedPathSet(["b", "a", "b", "c", "a"])

    assert paths.to_list() == ["b", "a", "c"]
    assert "c" in paths
    assert paths.add("d") is True
    assert paths.add("d") is False
    assert len(paths) == 4


def test_initial_mode_lists_every_path(tmp_path: Path) -> None:
    repository = FakeRepository(tmp_path, {"head": {"A": b"", "B": b"", "C": b""}})

    resolver = ChangeSetResolver(repository, "head")

    assert resolver.is_initial
    assert resolver.additions() == ["A", "B", "C"]
    assert resolver.deletions() == []
    assert resolver.modifications_old() == []
    assert resolver.modifications_new() == []
    assert resolver.new_change_set() == ["A", "B", "C"]
    assert resolver.old_change_set() == []


def test_differential_mode_sorts_entries(tmp_path: Path) -> None:
    diffs = [
        added("src/classes/New.cls"),
        added("src/classes/New.cls-meta.xml"),
        deleted("src/objects/Gone.object"),
        modified("src/pages/Home.page"),
        modified("src/pages/Home.page-meta.xml"),
        deleted("src/classes/Old.cls"),
        deleted("src/classes/Old.cls-meta.xml"),
    ]
    repository = FakeRepository(tmp_path, {"prev": {}, "head": {}}, diffs)

    resolver = ChangeSetResolver(repository, "head", "prev")

    assert resolver.additions() == ["src/classes/New.cls", "src/classes/New.cls-meta.xml"]
    assert resolver.deletions() == ["src/objects/Gone.object", "src/classes/Old.cls"]
    assert resolver.modifications_new() == ["src/pages/Home.page"]
    assert resolver.modifications_old() == ["src/pages/Home.page"]


def test_change_sets_concatenate_without_reordering(tmp_path: Path) -> None:
    diffs = [
        modified("b/Mod.cls"),
        added("a/Added.cls"),
        deleted("c/Removed.cls"),
        modified("a/Other.page"),
    ]
    repository = FakeRepository(tmp_path, {"prev": {}, "head": {}}, diffs)

    resolver = ChangeSetResolver(repository, "head", "prev")

    assert resolver.new_change_set() == resolver.additions() + resolver.modifications_new()
    assert resolver.new_change_set() == ["a/Added.cls", "b/Mod.cls", "a/Other.page"]
    assert resolver.old_change_set() == resolver.deletions() + resolver.modifications_old()
    assert resolver.old_change_set() == ["c/Removed.cls", "b/Mod.cls", "a/Other.page"]


def test_companion_only_addition_tracks_both_paths(tmp_path: Path) -> None:
    repository = FakeRepository(
        tmp_path,
        {"prev": {}, "head": {}},
        [added("objects/Foo.object-meta.xml")],
    )

    resolver = ChangeSetResolver(repository, "head", "prev")

    assert resolver.additions() == ["objects/Foo.object-meta.xml", "objects/Foo.object"]


def test_companion_folding_applies_to_deletions_and_modifications(tmp_path: Path) -> None:
    repository = FakeRepository(
        tmp_path,
        {"prev": {}, "head": {}},
        [deleted("objects/Foo.object-meta.xml"), modified("objects/Bar.object-meta.xml")],
    )

    resolver = ChangeSetResolver(repository, "head", "prev")

    assert resolver.deletions() == ["objects/Foo.object"]
    assert resolver.modifications_new() == ["objects/Bar.object"]
    assert resolver.modifications_old() == ["objects/Bar.object"]


def test_custom_companion_rule(tmp_path: Path) -> None:
    repository = FakeRepository(
        tmp_path, {"prev": {}, "head": {}}, [deleted("a/Foo.cls.sidecar")]
    )

    resolver = ChangeSetResolver(
        repository, "head", "prev", companion_rule=CompanionRule(".sidecar")
    )

    assert resolver.deletions() == ["a/Foo.cls"]


def test_unknown_revision_fails(tmp_path: Path) -> None:
    repository = FakeRepository(tmp_path, {"head": {}})

    with pytest.raises(NotFoundError):
        ChangeSetResolver(repository, "head", "missing")


def test_fetch_historical_file(tmp_path: Path) -> None:
    repository = FakeRepository(
        tmp_path, {"prev": {"src/classes/A.cls": b"old body"}, "head": {}}
    )
    resolver = ChangeSetResolver(repository, "head", "prev")

    assert resolver.fetch_historical_file("prev", "src/classes/A.cls") == b"old body"
    with pytest.raises(NotFoundError):
        resolver.fetch_historical_file("prev", "src/classes/B.cls")


def test_commit_manifest_update_skips_modification_only_changes(tmp_path: Path, registry) -> None:
    repository = FakeRepository(
        tmp_path, {"prev": {}, "head": {}}, [modified("src/classes/A.cls")]
    )
    resolver = ChangeSetResolver(repository, "head", "prev")

    committed = resolver.commit_manifest_update(
        ManifestSynthesizer(registry), CommitterIdentity("ci", "ci@example.com")
    )

    assert committed is False
    assert repository.commits == []
    assert not (tmp_path / "src" / "package.xml").exists()


def test_commit_manifest_update_writes_full_listing(tmp_path: Path, registry) -> None:
    head = {"src/classes/A.cls": b"", "src/classes/B.cls": b"", "src/objects/Acc.object": b""}
    repository = FakeRepository(
        tmp_path, {"prev": {}, "head": head}, [added("src/classes/B.cls")]
    )
    resolver = ChangeSetResolver(repository, "head", "prev")

    committed = resolver.commit_manifest_update(
        ManifestSynthesizer(registry), CommitterIdentity("ci", "ci@example.com")
    )

    assert committed is True
    assert repository.staged == ["src/package.xml"]
    assert repository.commits == [("ci", "ci@example.com", "Jenkins updated src/package.xml")]
    contents = parse_manifest((tmp_path / "src" / "package.xml").read_bytes())
    assert contents.types == {"ApexClass": ["A", "B"], "CustomObject": ["Acc"]}


def test_commit_manifest_update_skips_unchanged_manifest(tmp_path: Path, registry) -> None:
    head = {"src/classes/A.cls": b"", "src/classes/B.cls": b""}
    repository = FakeRepository(
        tmp_path, {"prev": {}, "head": head}, [added("src/classes/B.cls")]
    )
    resolver = ChangeSetResolver(repository, "head", "prev")
    synthesizer = ManifestSynthesizer(registry)
    identity = CommitterIdentity("ci", "ci@example.com")

    assert resolver.commit_manifest_update(synthesizer, identity) is True
    assert resolver.commit_manifest_update(synthesizer, identity) is False
    assert len(repository.commits) == 1
