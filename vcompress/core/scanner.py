"""
Discovery: turn an input file or directory into Jobs.
Skips already-compressed names, colliding outputs, fresh checkpoints and
declined overwrites; probes the duration of everything else.
"""

import os
import logging
from pathlib import Path
from typing import Callable, Optional

from vcompress.core.constants import (
    ErrorCode, ResultStatus, VIDEO_EXTENSIONS, COMPRESSED_MARKER,
    SEGMENT_ROOT_DIRNAME, TEMP_SUFFIX,
)
from vcompress.core.error_codes import JobError, ScanError
from vcompress.core.models import Job, ReportItem, ScanResult
from vcompress.core.checkpoint_store import CheckpointStore, checkpoint_path_for
from vcompress.core.probe import Probe, probe_duration

logger = logging.getLogger(__name__)

# output path -> overwrite?
OverwriteCallback = Callable[[str], bool]


def is_video_file(path: str | Path) -> bool:
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def is_compressed_name(path: str | Path) -> bool:
    """`movie.compressed.mp4` and friends, case-insensitive."""
    return Path(path).stem.lower().endswith(COMPRESSED_MARKER)


def output_path_for(input_path: str | Path, output_dir: str | Path | None = None,
                    relative_dir: str | Path | None = None) -> str:
    """
    <stem>.compressed<ext>, beside the input or inside `output_dir`.
    `relative_dir` is the input's subdirectory within a scanned tree; it is
    mirrored under `output_dir` so same-named files never share an output.
    """
    input_path = Path(input_path)
    if output_dir:
        target_dir = Path(output_dir) / (relative_dir or "")
    else:
        target_dir = input_path.parent
    return str(target_dir / f"{input_path.stem}{COMPRESSED_MARKER}{input_path.suffix}")


def iter_video_files(root: Path):
    """Walk `root` recursively. Any I/O error while walking is fatal."""
    def _raise(err: OSError):
        raise ScanError(f"Failed to walk {err.filename}: {err.strerror or err}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if d != SEGMENT_ROOT_DIRNAME)
        for name in sorted(filenames):
            if is_video_file(name):
                yield Path(dirpath) / name


def _ignored(path: str, reason: str, code: str, status: str = ResultStatus.IGNORED) -> ReportItem:
    return ReportItem(input_file=path, status=status, reason=reason, error_code=code)


class Scanner:
    """Builds the job list for one run."""

    def __init__(self, store: CheckpointStore,
                 output_dir: str | Path | None = None,
                 should_overwrite: Optional[OverwriteCallback] = None,
                 probe: Probe = probe_duration):
        self.store = store
        self.output_dir = Path(output_dir).resolve() if output_dir else None
        self.should_overwrite = should_overwrite or (lambda _path: False)
        self.probe = probe
        self._claimed: dict[str, str] = {}

    def scan(self, input_path: str | Path) -> ScanResult:
        input_path = Path(input_path)
        if not input_path.exists():
            raise ScanError(f"Input not found: {input_path}")

        result = ScanResult(store=self.store)
        self._claimed = {}
        if input_path.is_dir():
            for path in iter_video_files(input_path):
                self._add_file(path, result, path.parent.relative_to(input_path))
        else:
            self._add_file(input_path, result)

        logger.info("Scan of %s: %d job(s), %d skipped, %.1f s total",
                    input_path, len(result.jobs), len(result.ignored), result.total_duration_sec)
        return result

    def _add_file(self, path: Path, result: ScanResult, relative_dir: Path | None = None):
        path_str = str(path.resolve())

        if is_compressed_name(path_str):
            result.ignored.append(_ignored(path_str, "Filename indicates already compressed",
                                           ErrorCode.ALREADY_COMPRESSED))
            return

        output = output_path_for(path_str, self.output_dir, relative_dir)

        # Case-insensitive: x.mp4 and X.MP4 are one file on the default macOS volume
        owner = self._claimed.setdefault(output.lower(), path_str)
        if owner != path_str:
            logger.warning("Skipping %s: output %s already belongs to %s", path.name, output, owner)
            result.ignored.append(_ignored(path_str, f"Output path collides with {owner}",
                                           ErrorCode.DUPLICATE_OUTPUT, ResultStatus.FAILED))
            return

        if self.store.is_fresh(path_str, output):
            result.ignored.append(_ignored(path_str, "Resume checkpoint: already completed",
                                           ErrorCode.CHECKPOINT_FRESH))
            return

        if os.path.exists(output) and not self.should_overwrite(output):
            result.ignored.append(_ignored(path_str, "Output already exists (user chose to skip)",
                                           ErrorCode.USER_DECLINED))
            return

        try:
            duration = self.probe(path_str)
        except JobError as e:
            logger.warning("Cannot read media info, skipping %s: %s", path.name, e.message)
            result.ignored.append(_ignored(path_str, f"Read info failed: {e.message}",
                                           ErrorCode.DISCOVERY_FAILED, ResultStatus.FAILED))
            return

        if self.output_dir is not None:
            Path(output).parent.mkdir(parents=True, exist_ok=True)

        result.jobs.append(Job(
            input_path=path_str,
            output_path=output,
            temp_path=output + TEMP_SUFFIX,
            duration_sec=duration,
        ))
        result.total_duration_sec += duration


def scan_jobs(input_path: str | Path, output_dir: str | Path | None = None,
              should_overwrite: Optional[OverwriteCallback] = None,
              probe: Probe = probe_duration) -> ScanResult:
    """
    Load the checkpoint store for this run and scan `input_path`.
    Raises CheckpointError for an unreadable store and ScanError for a
    failed directory walk; everything per-file ends up in `ignored`.
    """
    store = CheckpointStore.load(checkpoint_path_for(input_path, output_dir))
    scanner = Scanner(store, output_dir, should_overwrite, probe)
    return scanner.scan(input_path)
