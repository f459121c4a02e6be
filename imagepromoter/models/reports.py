"""Pre-check report models — structured results of the CI-gate checks.

Policy violations are results, not faults: a check always returns a report
enumerating every violation it found, and ``render()`` produces the
deterministic text shown in CI logs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from imagepromoter.core.units import bytes_to_mb


class RemovalReport(BaseModel):
    """Output of the Image Removal Check."""

    model_config = ConfigDict(frozen=True)

    check_name: str = "ImageRemovalCheck"
    removed_images: list[str] = []

    @property
    def passed(self) -> bool:
        return not self.removed_images

    def render(self) -> str:
        if self.passed:
            return ""
        return (
            "The following images were removed in this pull request: "
            + ", ".join(self.removed_images)
        )


class SizeViolation(BaseModel):
    """One edge whose recorded size broke the size policy."""

    model_config = ConfigDict(frozen=True)

    image_name: str
    digest: str
    size_bytes: int

    def render(self) -> str:
        return f"{self.image_name} ({bytes_to_mb(self.size_bytes)} MiB)"


def _join_violations(violations: list[SizeViolation]) -> str:
    ordered = sorted(violations, key=lambda v: (v.image_name, v.digest))
    return "\n".join(v.render() for v in ordered)


class ImageSizeReport(BaseModel):
    """Output of the Image Size Check."""

    model_config = ConfigDict(frozen=True)

    check_name: str = "ImageSizeCheck"
    max_image_size_mib: int
    oversized: list[SizeViolation] = []
    invalid: list[SizeViolation] = []

    @property
    def passed(self) -> bool:
        return not self.oversized and not self.invalid

    def render(self) -> str:
        text = ""
        if self.oversized:
            text += (
                f"The following images were over the max file size of "
                f"{self.max_image_size_mib}MiB:\n{_join_violations(self.oversized)}\n"
            )
        if self.invalid:
            text += (
                "The following images had an invalid file size of 0 bytes or "
                f"less:\n{_join_violations(self.invalid)}\n"
            )
        return text


CheckReport = RemovalReport | ImageSizeReport
