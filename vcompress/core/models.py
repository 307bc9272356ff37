"""
Data models (plain dataclasses) for VideoCompress.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from vcompress.core.constants import ResultStatus

if TYPE_CHECKING:
    from vcompress.core.checkpoint_store import CheckpointStore


@dataclass(frozen=True)
class Job:
    input_path: str                  # absolute
    output_path: str
    temp_path: str
    duration_sec: float


@dataclass
class CheckpointRecord:
    input_file: str
    output_file: str
    input_size: int
    input_mod_unix: int
    completed_at: str

    @classmethod
    def from_dict(cls, data: dict) -> "CheckpointRecord":
        return cls(
            input_file=str(data['input_file']),
            output_file=str(data['output_file']),
            input_size=int(data['input_size']),
            input_mod_unix=int(data['input_mod_unix']),
            completed_at=str(data.get('completed_at', '')),
        )


@dataclass
class SegmentPlan:
    input_file: str
    output_file: str
    input_size: int
    input_mod_unix: int
    segment_seconds: int
    duration_sec: float
    total_segments: int

    def matches(self, other: "SegmentPlan") -> bool:
        """Same input fingerprint and same segmentation."""
        return (
            self.input_file == other.input_file
            and self.output_file == other.output_file
            and self.input_size == other.input_size
            and self.input_mod_unix == other.input_mod_unix
            and self.segment_seconds == other.segment_seconds
            and self.total_segments == other.total_segments
        )


@dataclass
class ReportItem:
    input_file: str
    output_file: str = ""
    status: str = ResultStatus.FAILED
    reason: str = ""
    error_code: Optional[str] = None
    original_size: int = 0
    new_size: int = 0
    command: str = ""


@dataclass
class ScanResult:
    jobs: list[Job] = field(default_factory=list)
    ignored: list[ReportItem] = field(default_factory=list)
    total_duration_sec: float = 0.0
    store: Optional["CheckpointStore"] = None
