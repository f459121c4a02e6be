"""Load promoter manifests from YAML.

Layout: every file named ``promoter-manifest.yaml`` below the manifest
root is one complete manifest::

    registries:
    - name: gcr.io/foo-staging
      src: true
    - name: us.gcr.io/foo-prod
      service-account: promoter@foo.iam.gserviceaccount.com
    images:
    - name: bar
      dmap:
        "sha256:...": ["1.0", "latest"]
    renames:
    - ["gcr.io/foo-staging/bar", "us.gcr.io/foo-prod/baz"]
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from imagepromoter.models.manifest import Manifest, ManifestError, ManifestSnapshot

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "promoter-manifest.yaml"


def parse_manifest(text: str, filepath: Path | None = None) -> Manifest:
    """Parse one manifest document."""
    where = filepath or "<string>"
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"{where}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{where}: expected a mapping at the top level")
    try:
        return Manifest.model_validate({**data, "filepath": filepath})
    except ValidationError as exc:
        raise ManifestError(f"{where}: {exc}") from exc


def load_manifest(path: Path) -> Manifest:
    """Read and parse the manifest at *path*."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"could not read manifest {path}: {exc}") from exc
    return parse_manifest(text, filepath=path)


def load_manifests_from_dir(root: Path) -> ManifestSnapshot:
    """Discover and parse every manifest below *root*, in sorted path order."""
    root = Path(root)
    if not root.is_dir():
        raise ManifestError(f"manifest directory {root} does not exist")
    paths = sorted(root.rglob(MANIFEST_FILENAME))
    manifests = tuple(load_manifest(p) for p in paths)
    logger.info("Loaded %d manifests from %s", len(manifests), root)
    return ManifestSnapshot(manifests=manifests)
