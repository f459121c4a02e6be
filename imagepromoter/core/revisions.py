"""Revision readers — materialize manifests at a given source-control revision.

The manifest repository's working tree is the one exclusive resource
shared by the checks.  A ``RevisionReader`` owns that tree: callers enter
``exclusive()`` for the whole checkout / parse / restore sequence and must
call ``restore()`` on every exit path.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Iterator, Protocol

from imagepromoter.models.manifest import ManifestSnapshot

logger = logging.getLogger(__name__)


class RevisionCheckoutError(RuntimeError):
    """Raised when the baseline revision cannot be materialized."""


class RevisionRestoreError(RuntimeError):
    """Raised when the working tree cannot be put back on the candidate revision."""


class RevisionReader(Protocol):
    """Capability to read manifests at an arbitrary revision."""

    def exclusive(self) -> contextlib.AbstractContextManager[None]:
        """Hold exclusive access to the working tree."""
        ...

    def materialize(self, revision: str) -> ManifestSnapshot:
        """Switch to *revision* and parse every manifest found there."""
        ...

    def restore(self, revision: str) -> None:
        """Put the working tree back on *revision*."""
        ...


ManifestLoader = Callable[[Path], ManifestSnapshot]

# One lock per resolved repository path, shared by every reader instance.
_TREE_LOCKS: dict[Path, threading.Lock] = {}
_TREE_LOCKS_GUARD = threading.Lock()


def working_tree_lock(repo_path: Path) -> threading.Lock:
    """Return the process-wide lock guarding *repo_path*'s working tree."""
    key = Path(repo_path).resolve()
    with _TREE_LOCKS_GUARD:
        return _TREE_LOCKS.setdefault(key, threading.Lock())


class GitRevisionReader:
    """``RevisionReader`` backed by ``git checkout --force``.

    Parameters
    ----------
    repo_path:
        Root of an already-cloned manifest repository.
    loader:
        Parses the manifests below a directory (see
        ``imagepromoter.manifests.loader.load_manifests_from_dir``).
    manifest_subdir:
        Directory inside the repository that holds the manifests.
    git_executable:
        Name or path of the git binary.
    """

    def __init__(
        self,
        repo_path: Path,
        loader: ManifestLoader,
        *,
        manifest_subdir: Path = Path("."),
        git_executable: str = "git",
    ) -> None:
        self._repo_path = Path(repo_path)
        self._loader = loader
        self._manifest_subdir = Path(manifest_subdir)
        self._git = git_executable
        self._lock = working_tree_lock(self._repo_path)

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    @property
    def manifest_dir(self) -> Path:
        return self._repo_path / self._manifest_subdir

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._lock:
            yield

    def _checkout(self, revision: str) -> None:
        result = subprocess.run(
            [self._git, "checkout", "--force", "--quiet", revision],
            cwd=self._repo_path,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, result.args, result.stdout, result.stderr
            )

    def materialize(self, revision: str) -> ManifestSnapshot:
        try:
            self._checkout(revision)
        except (OSError, subprocess.CalledProcessError) as exc:
            detail = getattr(exc, "stderr", "") or exc
            raise RevisionCheckoutError(
                f"Could not checkout revision {revision} of the Git repo "
                f"{self._repo_path}: {detail}"
            ) from exc
        logger.info("Checked out %s in %s", revision, self._repo_path)
        snapshot = self._loader(self.manifest_dir)
        return snapshot.model_copy(update={"revision": revision})

    def restore(self, revision: str) -> None:
        try:
            self._checkout(revision)
        except (OSError, subprocess.CalledProcessError) as exc:
            detail = getattr(exc, "stderr", "") or exc
            raise RevisionRestoreError(
                f"Could not checkout the pull request revision {revision} of "
                f"the Git repo {self._repo_path}: {detail}"
            ) from exc
        logger.info("Restored %s to %s", self._repo_path, revision)
