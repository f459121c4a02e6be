"""Run CI-gate pre-checks and aggregate their failures."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from imagepromoter.models.reports import CheckReport

logger = logging.getLogger(__name__)


class PreCheck(Protocol):
    name: str

    def run(self) -> CheckReport:
        ...


class PreCheckError(RuntimeError):
    """Raised when one or more pre-checks reported violations.

    ``reports`` holds every failed report so callers can inspect the
    structured fields instead of the rendered text.
    """

    def __init__(self, reports: list[CheckReport]) -> None:
        self.reports = reports
        super().__init__(
            "\n".join(f"{r.check_name} failed:\n{r.render()}" for r in reports)
        )


def run_prechecks(checks: Iterable[PreCheck]) -> list[CheckReport]:
    """Run every check, never stopping at the first failure.

    Returns all reports when every check passed, otherwise raises
    ``PreCheckError`` carrying the failed ones.
    """
    reports: list[CheckReport] = []
    for check in checks:
        logger.info("Running %s", check.name)
        reports.append(check.run())

    failed = [r for r in reports if not r.passed]
    if failed:
        raise PreCheckError(failed)
    logger.info("All %d pre-checks passed", len(reports))
    return reports
