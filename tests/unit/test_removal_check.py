"""Tests for the Image Removal Check — comparison, revision handling, config."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import BASE_SHA, PULL_SHA, digest
from imagepromoter.config import RevisionConfigError, RevisionPair
from imagepromoter.core.edge_builder import to_promotion_edges
from imagepromoter.core.removal_check import ImageRemovalCheck
from imagepromoter.core.revisions import GitRevisionReader
from imagepromoter.models.manifest import ManifestSnapshot
from imagepromoter.models.registry import RegistryContext, RegistryInventory


@pytest.fixture
def revisions() -> RevisionPair:
    return RevisionPair(baseline=BASE_SHA, candidate=PULL_SHA)


class TestCompare:
    def _check(self, revisions, make_reader) -> ImageRemovalCheck:
        return ImageRemovalCheck(revisions, frozenset(), make_reader({}))

    def test_identical_sets_pass(self, revisions, make_reader, make_edge):
        edges = frozenset({make_edge(), make_edge(image_name="foo")})
        report = self._check(revisions, make_reader).compare(edges, edges)
        assert report.passed
        assert report.render() == ""

    def test_added_images_pass(self, revisions, make_reader, make_edge):
        baseline = frozenset({make_edge()})
        candidate = frozenset({make_edge(), make_edge(image_name="new")})
        assert self._check(revisions, make_reader).compare(baseline, candidate).passed

    def test_removed_images_reported(self, revisions, make_reader, make_edge):
        baseline = frozenset(
            {make_edge(image_name="zeta"), make_edge(image_name="alpha"), make_edge()}
        )
        candidate = frozenset({make_edge()})
        report = self._check(revisions, make_reader).compare(baseline, candidate)
        assert not report.passed
        assert report.removed_images == ["alpha", "zeta"]
        assert report.render() == (
            "The following images were removed in this pull request: alpha, zeta"
        )

    def test_digest_change_is_removal(self, revisions, make_reader, make_edge):
        report = self._check(revisions, make_reader).compare(
            frozenset({make_edge(fill="1")}), frozenset({make_edge(fill="2")})
        )
        assert report.removed_images == ["bar"]

    def test_destination_registry_not_part_of_projection(
        self, revisions, make_reader, make_edge
    ):
        moved = make_edge(dst_registry=RegistryContext(name="eu.gcr.io/foo-prod"))
        report = self._check(revisions, make_reader).compare(
            frozenset({make_edge()}), frozenset({moved})
        )
        assert report.passed

    def test_every_missing_name_reported_once(self, revisions, make_reader, make_edge):
        baseline = frozenset({make_edge(tag="1.0"), make_edge(tag="1.1", fill="2")})
        report = self._check(revisions, make_reader).compare(baseline, frozenset())
        assert report.removed_images == ["bar"]


class TestRun:
    def test_run_compares_baseline_and_restores(
        self, revisions, make_reader, make_manifest
    ):
        baseline = ManifestSnapshot(
            manifests=(make_manifest({"bar": {digest("1"): ["1.0"]}, "foo": {digest("2"): []}}),)
        )
        candidate = to_promotion_edges(
            ManifestSnapshot(manifests=(make_manifest({"bar": {digest("1"): ["1.0"]}}),))
        )
        reader = make_reader({BASE_SHA: baseline})
        report = ImageRemovalCheck(revisions, candidate, reader).run()

        assert report.removed_images == ["foo"]
        assert reader.calls == [("materialize", BASE_SHA), ("restore", PULL_SHA)]
        assert reader.current == PULL_SHA

    def test_restores_even_when_materialize_fails(self, revisions, make_reader):
        reader = make_reader({}, fail_materialize=True)
        check = ImageRemovalCheck(revisions, frozenset(), reader)
        with pytest.raises(RuntimeError, match="broken manifest"):
            check.run()
        assert reader.calls[-1] == ("restore", PULL_SHA)
        assert reader.current == PULL_SHA

    def test_serial_runs_leave_candidate_checked_out(
        self, revisions, make_reader, make_manifest
    ):
        baseline = ManifestSnapshot(
            manifests=(make_manifest({"bar": {digest("1"): ["1.0"]}}),)
        )
        reader = make_reader({BASE_SHA: baseline})
        check = ImageRemovalCheck(revisions, frozenset(), reader)
        for _ in range(2):
            assert not check.run().passed
            assert reader.current == PULL_SHA


class TestFromEnv:
    def test_valid_environment(self, make_reader):
        check = ImageRemovalCheck.from_env(
            ".",
            frozenset(),
            reader=make_reader({}),
            environ={"PULL_BASE_SHA": BASE_SHA, "PULL_PULL_SHA": PULL_SHA},
        )
        assert check.revisions.baseline == BASE_SHA
        assert check.revisions.candidate == PULL_SHA

    @pytest.mark.parametrize(
        "environ, variable",
        [
            ({"PULL_BASE_SHA": "a" * 39, "PULL_PULL_SHA": PULL_SHA}, "PULL_BASE_SHA"),
            ({"PULL_BASE_SHA": "g" * 40, "PULL_PULL_SHA": PULL_SHA}, "PULL_BASE_SHA"),
            ({"PULL_BASE_SHA": BASE_SHA}, "PULL_PULL_SHA"),
            ({"PULL_BASE_SHA": BASE_SHA, "PULL_PULL_SHA": "b" * 41}, "PULL_PULL_SHA"),
        ],
    )
    def test_malformed_sha_fails_before_checkout(self, make_reader, environ, variable):
        reader = make_reader({})
        with pytest.raises(RevisionConfigError, match=variable):
            ImageRemovalCheck.from_env(".", frozenset(), reader=reader, environ=environ)
        assert reader.calls == []

    def test_inventory_expands_baseline_children(self, make_reader, make_manifest):
        parent = digest("1")
        inventory = RegistryInventory(children={parent: [digest("2")]})
        baseline = ManifestSnapshot(manifests=(make_manifest({"bar": {parent: ["1.0"]}}),))
        # Candidate keeps the parent but has lost its child edge.
        candidate = frozenset(
            e for e in to_promotion_edges(baseline, inventory) if not e.parent_digest
        )
        check = ImageRemovalCheck.from_env(
            ".",
            candidate,
            reader=make_reader({BASE_SHA: baseline}),
            environ={"PULL_BASE_SHA": BASE_SHA, "PULL_PULL_SHA": PULL_SHA},
            inventory=inventory,
        )
        assert check.run().removed_images == ["bar"]

    def test_git_reader_uses_manifest_subdir(self, tmp_path):
        check = ImageRemovalCheck.from_env(
            tmp_path,
            frozenset(),
            environ={"PULL_BASE_SHA": BASE_SHA, "PULL_PULL_SHA": PULL_SHA},
            manifest_subdir=Path("manifests"),
        )
        assert isinstance(check._reader, GitRevisionReader)
        assert check._reader.manifest_dir == tmp_path / "manifests"
