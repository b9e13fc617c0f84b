"""Pydantic data models for the normalizer."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ankinorm.config import (
    INTEGRATED_LOUDNESS_RANGE,
    LOUDNESS_RANGE_RANGE,
    TRUE_PEAK_RANGE,
)


# Normalization targets

class NormalizationRequest(BaseModel):
    """Loudness targets passed to the helper, fixed for a whole run."""

    integrated_loudness: float = Field(
        default=-18.0,
        ge=INTEGRATED_LOUDNESS_RANGE[0],
        le=INTEGRATED_LOUDNESS_RANGE[1],
    )
    loudness_range: float = Field(
        default=12.0,
        ge=LOUDNESS_RANGE_RANGE[0],
        le=LOUDNESS_RANGE_RANGE[1],
    )
    true_peak: float = Field(
        default=-1.0,
        ge=TRUE_PEAK_RANGE[0],
        le=TRUE_PEAK_RANGE[1],
    )

    model_config = {"frozen": True}


# External tool models

class ToolInvocationResult(BaseModel):
    """Captured result of an external command."""

    output: str = ""  # stdout and stderr, merged
    success: bool
    returncode: Optional[int] = None


class FilterExpression(BaseModel):
    """Audio filter arguments recommended by the loudness helper."""

    text: str
    clean: bool = True  # False when the filter line could not be located


class AudioLevels(BaseModel):
    """Volume statistics from ffmpeg's volumedetect filter."""

    mean_volume: Optional[float] = None  # dB
    max_volume: Optional[float] = None  # dB

    @staticmethod
    def format_level(value: Optional[float]) -> str:
        """Format a level for display, N/A when unavailable."""
        return "N/A" if value is None else f"{value} dB"


# Outcomes

class BackupOutcome(str, Enum):
    """Result of ensuring a backup copy."""

    CREATED = "created"
    ALREADY_EXISTED = "already_existed"


class FileOutcome(str, Enum):
    """Terminal state of one file."""

    PROCESSED = "processed"
    FAILED = "failed"
    DRY_RUN = "dry_run"
    SKIPPED = "skipped"


class RunReport(BaseModel):
    """Counters for a whole run."""

    processed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped

    def record(self, outcome: FileOutcome) -> None:
        """Count a file outcome. Dry-run files count as processed."""
        if outcome == FileOutcome.FAILED:
            self.failed += 1
        elif outcome == FileOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.processed += 1
