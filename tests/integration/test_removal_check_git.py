"""Integration test: Image Removal Check against a real git working tree."""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import digest
from imagepromoter.cli.app import app
from imagepromoter.config import RevisionPair
from imagepromoter.core.edge_builder import to_promotion_edges
from imagepromoter.core.removal_check import ImageRemovalCheck
from imagepromoter.core.revisions import (
    GitRevisionReader,
    RevisionCheckoutError,
    RevisionRestoreError,
)
from imagepromoter.manifests.loader import MANIFEST_FILENAME, load_manifests_from_dir

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _manifest(images: dict[str, str]) -> str:
    lines = [
        "registries:",
        "- name: gcr.io/foo-staging",
        "  src: true",
        "- name: us.gcr.io/foo-prod",
        "images:",
    ]
    for name, fill in images.items():
        lines += [f"- name: {name}", "  dmap:", f'    "{digest(fill)}": ["1.0"]']
    return "\n".join(lines) + "\n"


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def _commit(repo: Path, text: str, message: str) -> str:
    (repo / "manifests" / "foo").mkdir(parents=True, exist_ok=True)
    (repo / "manifests" / "foo" / MANIFEST_FILENAME).write_text(text, encoding="utf-8")
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", message)
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    path = tmp_path / "k8s.io"
    path.mkdir()
    _git(path, "init", "-q")
    _git(path, "config", "user.email", "ci@example.com")
    _git(path, "config", "user.name", "CI")
    _git(path, "config", "commit.gpgsign", "false")
    return path


def _reader(repo: Path) -> GitRevisionReader:
    return GitRevisionReader(repo, load_manifests_from_dir, manifest_subdir=Path("manifests"))


class TestGitRemovalCheck:
    def test_removed_image_detected_and_tree_restored(self, repo):
        base = _commit(repo, _manifest({"bar": "1", "foo": "2"}), "base")
        pull = _commit(repo, _manifest({"bar": "1"}), "drop foo")
        candidate = to_promotion_edges(load_manifests_from_dir(repo / "manifests"))

        check = ImageRemovalCheck(
            RevisionPair(baseline=base, candidate=pull), candidate, _reader(repo)
        )
        for _ in range(2):
            report = check.run()
            assert report.removed_images == ["foo"]
            assert _git(repo, "rev-parse", "HEAD") == pull

    def test_added_image_passes(self, repo):
        base = _commit(repo, _manifest({"bar": "1"}), "base")
        pull = _commit(repo, _manifest({"bar": "1", "new": "3"}), "add new")
        candidate = to_promotion_edges(load_manifests_from_dir(repo / "manifests"))

        report = ImageRemovalCheck(
            RevisionPair(baseline=base, candidate=pull), candidate, _reader(repo)
        ).run()
        assert report.passed
        assert _git(repo, "rev-parse", "HEAD") == pull

    def test_unknown_baseline_is_checkout_error(self, repo):
        pull = _commit(repo, _manifest({"bar": "1"}), "base")
        check = ImageRemovalCheck(
            RevisionPair(baseline="c" * 40, candidate=pull), frozenset(), _reader(repo)
        )
        with pytest.raises(RevisionCheckoutError):
            check.run()
        assert _git(repo, "rev-parse", "HEAD") == pull

    def test_unknown_candidate_is_restore_error(self, repo):
        base = _commit(repo, _manifest({"bar": "1"}), "base")
        check = ImageRemovalCheck(
            RevisionPair(baseline=base, candidate="d" * 40), frozenset(), _reader(repo)
        )
        with pytest.raises(RevisionRestoreError):
            check.run()


class TestPrecheckCommand:
    def _run(self, repo: Path, tmp_path: Path, monkeypatch, base: str, pull: str, sizes):
        inventory = tmp_path / "inventory.json"
        inventory.write_text(json.dumps({"sizes": sizes}), encoding="utf-8")
        monkeypatch.setenv("PULL_BASE_SHA", base)
        monkeypatch.setenv("PULL_PULL_SHA", pull)
        return CliRunner().invoke(
            app,
            [
                "precheck",
                "-r", str(repo),
                "-m", "manifests",
                "-i", str(inventory),
                "--max-size", "1",
            ],
        )

    def test_reports_every_failed_check(self, repo, tmp_path, monkeypatch):
        base = _commit(repo, _manifest({"bar": "1", "foo": "2"}), "base")
        pull = _commit(repo, _manifest({"bar": "1"}), "drop foo")
        result = self._run(repo, tmp_path, monkeypatch, base, pull, {digest("1"): 3 << 20})

        assert result.exit_code == 1
        assert "ImageRemovalCheck failed" in result.output
        assert "removed in this pull request: foo" in result.output
        assert "ImageSizeCheck failed" in result.output
        assert "bar (3 MiB)" in result.output
        assert _git(repo, "rev-parse", "HEAD") == pull

    def test_all_checks_pass(self, repo, tmp_path, monkeypatch):
        base = _commit(repo, _manifest({"bar": "1"}), "base")
        pull = _commit(repo, _manifest({"bar": "1", "new": "3"}), "add new")
        result = self._run(
            repo, tmp_path, monkeypatch, base, pull, {digest("1"): 100, digest("3"): 100}
        )

        assert result.exit_code == 0
        assert "ImageRemovalCheck passed" in result.output
        assert "ImageSizeCheck passed" in result.output
