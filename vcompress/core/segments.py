"""
Segment planner and concatenator for single large inputs.

The input is encoded as fixed-length time slices in a per-job workspace:

    <output dir>/.vcparts/<output stem>-<sha1[:10]>/
        resume_meta.json
        seg_000000.mp4
        seg_000001.mp4
        concat_list.txt

Finished slices survive an interruption, so a re-run only encodes what is
missing and then stitches everything together with the concat demuxer.
"""

import hashlib
import json
import math
import os
import shutil
import logging
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from vcompress.core.constants import (
    ErrorCode, DEFAULT_SEGMENT_SEC, SEGMENT_ROOT_DIRNAME, SEGMENT_META_FILENAME,
    CONCAT_LIST_FILENAME, SEGMENT_NAME_TEMPLATE, TEMP_SUFFIX, MERGE_TEMP_SUFFIX,
)
from vcompress.core.error_codes import JobError, JobCancelled, PersistenceFailure
from vcompress.core.models import Job, SegmentPlan
from vcompress.core.checkpoint_store import CheckpointStore, fingerprint
from vcompress.core.cleanup import remove_file, remove_segment_workspace
from vcompress.core.command_builder import build_segment_args, build_concat_args
from vcompress.core.process_runner import Runner, run_process
from vcompress.core.probe import Probe, probe_duration
from vcompress.core.progress import ProgressCounter

logger = logging.getLogger(__name__)


# ── Planning ──────────────────────────────────────────────────────────

def count_segments(duration_sec: float, segment_seconds: int) -> int:
    """ceil(duration / length), never less than one."""
    return max(1, int(math.ceil(duration_sec / float(segment_seconds))))


def segment_bounds(idx: int, duration_sec: float, segment_seconds: int) -> tuple[float, float]:
    """(start, length) of segment `idx`, clipped to the input duration."""
    start = float(idx * segment_seconds)
    length = min(float(segment_seconds), duration_sec - start)
    return start, max(0.0, length)


def create_segment_manifest(duration_sec: float, segment_seconds: int) -> list[dict]:
    """
    Manifest entries for every non-empty segment.
    Returns list of dicts with idx, start_sec, duration_sec.
    """
    entries = []
    for idx in range(count_segments(duration_sec, segment_seconds)):
        start, length = segment_bounds(idx, duration_sec, segment_seconds)
        if length <= 0:
            continue
        entries.append({'idx': idx, 'start_sec': start, 'duration_sec': length})
    return entries


def segment_workspace(job: Job) -> Path:
    """Deterministic per (input, output) so a re-run finds its old slices."""
    digest = hashlib.sha1(f"{job.input_path}|{job.output_path}".encode('utf-8')).hexdigest()[:10]
    output = Path(job.output_path)
    return output.parent / SEGMENT_ROOT_DIRNAME / f"{output.stem}-{digest}"


def build_plan(job: Job, segment_seconds: int) -> SegmentPlan:
    size, mod_unix = fingerprint(job.input_path)
    return SegmentPlan(
        input_file=job.input_path,
        output_file=job.output_path,
        input_size=size,
        input_mod_unix=mod_unix,
        segment_seconds=segment_seconds,
        duration_sec=job.duration_sec,
        total_segments=count_segments(job.duration_sec, segment_seconds),
    )


def load_plan(path: Path) -> SegmentPlan:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return SegmentPlan(
        input_file=str(data['input_file']),
        output_file=str(data['output_file']),
        input_size=int(data['input_size']),
        input_mod_unix=int(data['input_mod_unix']),
        segment_seconds=int(data['segment_seconds']),
        duration_sec=float(data['duration_sec']),
        total_segments=int(data['total_segments']),
    )


def save_plan(path: Path, plan: SegmentPlan):
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(plan), f, indent=2)
    except OSError as e:
        raise PersistenceFailure(f"Failed to write {path.name}: {e}")


def reset_workspace_if_changed(workspace: Path, expected: SegmentPlan) -> bool:
    """
    Wipe `workspace` unless its saved plan matches `expected`.
    A workspace without a readable plan cannot be trusted either.
    Returns True if the workspace was deleted.
    """
    if not workspace.exists():
        return False

    try:
        current = load_plan(workspace / SEGMENT_META_FILENAME)
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.info("Segment plan unreadable in %s (%s), starting over", workspace.name, e)
        current = None

    if current is not None and current.matches(expected):
        return False

    if current is not None:
        logger.info("Input or segment length changed for %s, discarding %s",
                    Path(expected.input_file).name, workspace.name)
    try:
        shutil.rmtree(workspace)
    except OSError as e:
        raise JobError(ErrorCode.SEGMENT_WORKSPACE, f"Failed to reset {workspace}: {e}")
    return True


def write_concat_list(list_path: Path, segment_paths: list[Path]) -> Path:
    """concat demuxer list, one `file '<path>'` per line, quotes escaped."""
    with open(list_path, 'w', encoding='utf-8') as f:
        for seg in segment_paths:
            escaped = str(seg).replace("'", "'\\''")
            f.write(f"file '{escaped}'\n")
    return list_path


# ── Execution ─────────────────────────────────────────────────────────

class SegmentedJob:
    """
    Runs one Job as resumable segments: plan → validate-or-reset → encode
    missing slices → concat → commit. Every step raises JobError; the
    caller turns that into the job's report entry.
    """

    def __init__(self, job: Job, config: dict | None = None,
                 store: Optional[CheckpointStore] = None,
                 cancel_event: Optional[threading.Event] = None,
                 progress: Optional[ProgressCounter] = None,
                 runner: Runner = run_process,
                 probe: Probe = probe_duration):
        self.job = job
        self.config = config or {}
        self.store = store
        self.cancel_event = cancel_event or threading.Event()
        self.progress = progress or ProgressCounter()
        self.runner = runner
        self.probe = probe

        self.workspace = segment_workspace(job)
        self.encoded: list[int] = []
        self.reused: list[int] = []

    @property
    def segment_seconds(self) -> int:
        value = int(self.config.get('segment_seconds') or 0)
        return value if value > 0 else DEFAULT_SEGMENT_SEC

    @property
    def extension(self) -> str:
        return Path(self.job.output_path).suffix or ".mp4"

    @property
    def command(self) -> str:
        return f"ffmpeg segmented-resume input={self.job.input_path} output={self.job.output_path}"

    def segment_path(self, idx: int) -> Path:
        return self.workspace / SEGMENT_NAME_TEMPLATE.format(idx=idx, ext=self.extension)

    def run(self) -> SegmentPlan:
        """Process the job end to end. Returns the plan (with the input fingerprint)."""
        try:
            plan = build_plan(self.job, self.segment_seconds)
        except OSError as e:
            raise JobError(ErrorCode.INPUT_STAT, f"stat input failed: {e}")

        self.prepare_workspace(plan)
        manifest = create_segment_manifest(plan.duration_sec, plan.segment_seconds)
        segments = self.encode_segments(manifest)
        self.concatenate(segments)

        if self.store is not None:
            self.store.record_completion(self.job.input_path, self.job.output_path,
                                         plan.input_size, plan.input_mod_unix)
        remove_segment_workspace(self.workspace)
        return plan

    def prepare_workspace(self, plan: SegmentPlan):
        reset_workspace_if_changed(self.workspace, plan)
        try:
            self.workspace.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise JobError(ErrorCode.SEGMENT_WORKSPACE, f"create segment workspace failed: {e}")

        try:
            save_plan(self.workspace / SEGMENT_META_FILENAME, plan)
        except PersistenceFailure as e:
            # Next run finds no plan and resets, so carrying on is safe
            logger.warning("%s", e.message)

    def encode_segments(self, manifest: list[dict]) -> list[Path]:
        paths = []
        for entry in manifest:
            if self.cancel_event.is_set():
                raise JobCancelled()

            idx = entry['idx']
            seg = self.segment_path(idx)
            paths.append(seg)

            if self._reuse_segment(seg):
                self.reused.append(idx)
                continue

            tmp = seg.with_name(seg.name + TEMP_SUFFIX)
            remove_file(tmp)
            args = build_segment_args(self.job.input_path, str(tmp), self.config,
                                      entry['start_sec'], entry['duration_sec'])
            try:
                self.runner(args, self.cancel_event, self.progress)
            except JobError:
                remove_file(tmp)
                raise

            try:
                os.replace(tmp, seg)
            except OSError as e:
                remove_file(tmp)
                raise JobError(ErrorCode.FINALIZE, f"finalize segment failed: {e}")
            self.encoded.append(idx)
            logger.info("Segment %d/%d done: %s", idx + 1, len(manifest), Path(self.job.input_path).name)

        return paths

    def _reuse_segment(self, seg: Path) -> bool:
        """Credit an already finished slice to the progress bar instead of re-encoding it."""
        if not seg.exists():
            return False
        try:
            seg_duration = self.probe(str(seg))
        except JobError as e:
            logger.info("Existing segment %s unreadable (%s), re-encoding", seg.name, e.message)
            seg_duration = 0.0

        if seg_duration > 0:
            self.progress.add_seconds(seg_duration)
            return True

        remove_file(seg)
        return False

    def concatenate(self, segments: list[Path]):
        if not segments:
            raise JobError(ErrorCode.SEGMENT_MISSING, "no segments to concatenate")
        for seg in segments:
            if not seg.exists():
                raise JobError(ErrorCode.SEGMENT_MISSING, f"missing segment for concat: {seg.name}")

        try:
            list_path = write_concat_list(self.workspace / CONCAT_LIST_FILENAME, segments)
        except OSError as e:
            raise JobError(ErrorCode.SEGMENT_WORKSPACE, f"write concat list failed: {e}")

        final_tmp = self.job.output_path + MERGE_TEMP_SUFFIX
        remove_file(final_tmp)
        try:
            self.runner(build_concat_args(str(list_path), final_tmp), self.cancel_event, None)
        except JobError:
            remove_file(final_tmp)
            raise

        try:
            os.replace(final_tmp, self.job.output_path)
        except OSError as e:
            remove_file(final_tmp)
            raise JobError(ErrorCode.FINALIZE, f"finalize output failed: {e}")
        logger.info("Concatenated %d segments into %s", len(segments), Path(self.job.output_path).name)
