"""
Job Scheduler.
Runs a scanned job list either as one resumable segmented job or as a
bounded-concurrency batch, and returns one report entry per job.
"""

import os
import logging
import threading
from pathlib import Path
from typing import Optional

from vcompress.core.constants import (
    ErrorCode, ResultStatus, DEFAULT_WORKERS, DEFAULT_SEGMENT_SEC, CANCEL_POLL_SEC,
)
from vcompress.core.error_codes import JobError
from vcompress.core.models import Job, ReportItem
from vcompress.core.checkpoint_store import CheckpointStore, fingerprint
from vcompress.core.cleanup import remove_file
from vcompress.core.command_builder import build_args
from vcompress.core.process_runner import Runner, run_process
from vcompress.core.probe import Probe, probe_duration
from vcompress.core.progress import ProgressCounter
from vcompress.core.segments import SegmentedJob
from vcompress.core.subprocess_utils import format_command

logger = logging.getLogger(__name__)


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


class Scheduler:
    """
    Executes jobs against a shared CheckpointStore and ProgressCounter.
    `cancel_event` is the run's cancellation token: once set, no job is
    admitted and running encoders are terminated.
    """

    def __init__(self, store: CheckpointStore, config: dict | None = None,
                 progress: Optional[ProgressCounter] = None,
                 cancel_event: Optional[threading.Event] = None,
                 runner: Runner = run_process,
                 probe: Probe = probe_duration):
        self.store = store
        self.config = config or {}
        self.progress = progress or ProgressCounter()
        self.cancel_event = cancel_event or threading.Event()
        self.runner = runner
        self.probe = probe

        self._results: list[ReportItem] = []
        self._results_lock = threading.Lock()

    # ── Config helpers ────────────────────────────────────────────────

    @property
    def workers(self) -> int:
        return max(1, int(self.config.get('workers', DEFAULT_WORKERS)))

    @property
    def segment_resume(self) -> bool:
        return bool(self.config.get('segment_resume', True))

    @property
    def segment_seconds(self) -> int:
        return int(self.config.get('segment_seconds') or DEFAULT_SEGMENT_SEC)

    def use_segment_mode(self, jobs: list[Job]) -> bool:
        return len(jobs) == 1 and self.segment_resume

    # ── Entry point ───────────────────────────────────────────────────

    def process(self, jobs: list[Job]) -> list[ReportItem]:
        """Run every job; returns once each has a report entry (order unspecified)."""
        self._results = []
        if not jobs:
            return []

        if self.use_segment_mode(jobs):
            logger.info("Single job, using segmented resume (%ds segments)", self.segment_seconds)
            self._add_result(self._run_segmented(jobs[0]))
        else:
            self._run_batch(jobs)

        return list(self._results)

    def _add_result(self, item: ReportItem):
        with self._results_lock:
            self._results.append(item)

    # ── Segment mode ──────────────────────────────────────────────────

    def _run_segmented(self, job: Job) -> ReportItem:
        segmented = SegmentedJob(job, self.config, self.store, self.cancel_event,
                                 self.progress, self.runner, self.probe)
        item = ReportItem(input_file=job.input_path, output_file=job.output_path,
                          command=segmented.command)
        try:
            plan = segmented.run()
        except JobError as e:
            item.original_size = _file_size(job.input_path)
            self._fail(item, e)
            return item
        except Exception as e:
            logger.error("Unexpected error processing %s: %s", job.input_path, e, exc_info=True)
            self._fail(item, JobError(ErrorCode.UNEXPECTED, str(e)))
            return item

        item.original_size = plan.input_size
        item.new_size = _file_size(job.output_path)
        item.status = ResultStatus.PROCESSED
        return item

    # ── Batch mode ────────────────────────────────────────────────────

    def _run_batch(self, jobs: list[Job]):
        workers = 1 if len(jobs) == 1 else self.workers
        gate = threading.BoundedSemaphore(workers)
        threads: list[threading.Thread] = []

        logger.info("Batch of %d job(s), %d worker(s)", len(jobs), workers)
        for idx, job in enumerate(jobs):
            if not self._admit(gate):
                for skipped in jobs[idx:]:
                    self._add_result(self._not_started(skipped))
                break

            thread = threading.Thread(target=self._worker, args=(job, gate),
                                      name=f"vc-worker-{idx}", daemon=True)
            threads.append(thread)
            thread.start()

        for thread in threads:
            thread.join()

    def _admit(self, gate: threading.BoundedSemaphore) -> bool:
        """Wait for a free slot; give up as soon as the run is cancelled."""
        while not self.cancel_event.is_set():
            if gate.acquire(timeout=CANCEL_POLL_SEC):
                if self.cancel_event.is_set():
                    gate.release()
                    return False
                return True
        return False

    def _worker(self, job: Job, gate: threading.BoundedSemaphore):
        try:
            item = self._run_whole_file(job)
        except Exception as e:
            logger.error("Unexpected error processing %s: %s", job.input_path, e, exc_info=True)
            item = ReportItem(input_file=job.input_path, output_file=job.output_path)
            self._fail(item, JobError(ErrorCode.UNEXPECTED, str(e)))
            remove_file(job.temp_path)
        finally:
            gate.release()
        self._add_result(item)

    def _run_whole_file(self, job: Job) -> ReportItem:
        """Encode into the temp path, rename into place, then checkpoint."""
        item = ReportItem(input_file=job.input_path, output_file=job.output_path)

        try:
            size, mod_unix = fingerprint(job.input_path)
        except OSError as e:
            self._fail(item, JobError(ErrorCode.INPUT_STAT, f"stat input failed: {e}"))
            return item
        item.original_size = size

        remove_file(job.temp_path)
        args = build_args(job.input_path, job.temp_path, self.config)
        item.command = format_command(args)

        try:
            self.runner(args, self.cancel_event, self.progress)
        except JobError as e:
            remove_file(job.temp_path)
            self._fail(item, e)
            return item

        try:
            os.replace(job.temp_path, job.output_path)
        except OSError as e:
            remove_file(job.temp_path)
            self._fail(item, JobError(ErrorCode.FINALIZE, f"finalize output failed: {e}"))
            return item

        item.status = ResultStatus.PROCESSED
        item.new_size = _file_size(job.output_path)
        self.store.record_completion(job.input_path, job.output_path, size, mod_unix)
        logger.info("Done: %s", Path(job.input_path).name)
        return item

    # ── Failure helpers ───────────────────────────────────────────────

    def _fail(self, item: ReportItem, error: JobError):
        item.status = ResultStatus.FAILED
        item.error_code = error.code
        item.reason = error.message
        name = Path(item.input_file).name
        if error.code == ErrorCode.CANCELLED:
            logger.warning("Cancelled: %s", name)
        else:
            logger.error("Failed: %s (%s)", name, error.message)

    def _not_started(self, job: Job) -> ReportItem:
        return ReportItem(
            input_file=job.input_path,
            output_file=job.output_path,
            status=ResultStatus.FAILED,
            reason="Not started: run cancelled",
            error_code=ErrorCode.CANCELLED,
            original_size=_file_size(job.input_path),
        )
