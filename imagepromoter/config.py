"""Promoter configuration — env-driven settings and revision identifiers.

``PromoterConfig`` uses pydantic-settings and reads ``.env`` plus
``IMAGEPROMOTER_*`` environment variables.  ``RevisionPair`` is the
injected ``{baseline, candidate}`` pair consumed by the Image Removal
Check; ``RevisionPair.from_env`` is the only place that reads the CI
job's ``PULL_BASE_SHA`` / ``PULL_PULL_SHA`` variables.
"""

from __future__ import annotations

import binascii
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GIT_SHA_LENGTH = 40
BASELINE_ENV_VAR = "PULL_BASE_SHA"
CANDIDATE_ENV_VAR = "PULL_PULL_SHA"


class RevisionConfigError(ValueError):
    """Raised when a revision identifier is missing or malformed."""


def validate_git_sha(value: str) -> str:
    """Return *value* if it is a 40-character hex SHA, else raise ``ValueError``."""
    if len(value) != GIT_SHA_LENGTH:
        raise ValueError(
            f"Length of SHA is {len(value)} characters, should be {GIT_SHA_LENGTH}"
        )
    try:
        binascii.unhexlify(value)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Not a valid SHA: {exc}") from exc
    return value.lower()


class RevisionPair(BaseModel):
    """Baseline (trusted) and candidate (proposed) manifest revisions."""

    model_config = ConfigDict(frozen=True)

    baseline: str
    candidate: str

    @field_validator("baseline", "candidate")
    @classmethod
    def _check_sha(cls, value: str) -> str:
        return validate_git_sha(value)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RevisionPair:
        """Build the pair from ``PULL_BASE_SHA`` and ``PULL_PULL_SHA``.

        Raises
        ------
        RevisionConfigError
            Naming the offending variable when it is absent or malformed.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field, var in (("baseline", BASELINE_ENV_VAR), ("candidate", CANDIDATE_ENV_VAR)):
            try:
                values[field] = validate_git_sha(env.get(var, ""))
            except ValueError as exc:
                raise RevisionConfigError(
                    f"The {var} environment variable is invalid: {exc}"
                ) from exc
        try:
            return cls(**values)
        except ValidationError as exc:
            raise RevisionConfigError(str(exc)) from exc


class PromoterConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export IMAGEPROMOTER_MAX_IMAGE_SIZE_MIB=1024
        export IMAGEPROMOTER_LOG_LEVEL=DEBUG
        export IMAGEPROMOTER_TRANSACTION_LOG_PATH=/data/audit.db
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="IMAGEPROMOTER_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Manifest repository
    repo_path: Path = Path(".")
    manifest_dir: Path = Path(".")

    # Image Size Check ceiling, in MiB
    max_image_size_mib: int = Field(default=2048, ge=0)

    # Audit Verifier
    transaction_log_path: Path = Path(".imagepromoter/transactions.db")
    audit_workers: int = Field(default=4, ge=1)
