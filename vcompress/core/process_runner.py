"""
External process runner.

Launches one encoder invocation, reads its `-progress pipe:1` output and turns
the cumulative `out_time_us` values into forward deltas on the shared
progress counter. Cancellation terminates the child process itself.
"""

import logging
import threading
import subprocess
from pathlib import Path
from typing import Callable, Optional

from vcompress.core.constants import (
    ErrorCode, PROGRESS_KEY, CANCEL_POLL_SEC, TERMINATE_GRACE_SEC, STDERR_TAIL_CHARS,
)
from vcompress.core.error_codes import JobError, JobCancelled, ProcessFailure
from vcompress.core.progress import ProgressCounter
from vcompress.core.subprocess_utils import popen_streaming

logger = logging.getLogger(__name__)

# (args, cancel_event, progress) -> microseconds reported by the process
Runner = Callable[[list[str], Optional[threading.Event], Optional[ProgressCounter]], int]


class ProgressParser:
    """
    Per-process state for the key=value progress protocol.
    Only values above the last reported one produce a delta; out-of-order,
    duplicate and malformed lines (e.g. `out_time_us=N/A`) are dropped.
    """

    def __init__(self, counter: Optional[ProgressCounter] = None):
        self.counter = counter
        self.last_reported_us = 0

    def feed(self, line: str) -> int:
        key, sep, value = line.strip().partition('=')
        if not sep or key != PROGRESS_KEY:
            return 0
        try:
            current_us = int(value.strip())
        except ValueError:
            return 0
        if current_us <= self.last_reported_us:
            return 0

        delta = current_us - self.last_reported_us
        self.last_reported_us = current_us
        if self.counter is not None:
            self.counter.add(delta)
        return delta


def _drain(stream, sink: list[str]):
    for chunk in stream:
        sink.append(chunk)


def _terminate(proc: subprocess.Popen):
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE_SEC)
    except subprocess.TimeoutExpired:
        logger.warning("Process %s ignored SIGTERM, killing", proc.pid)
        proc.kill()
        proc.wait()


def _watch_cancel(proc: subprocess.Popen, cancel_event: threading.Event,
                  finished: threading.Event, cancelled: threading.Event):
    while not finished.is_set():
        if cancel_event.wait(CANCEL_POLL_SEC):
            if proc.poll() is None:
                cancelled.set()
                logger.debug("Cancelling process %s", proc.pid)
                _terminate(proc)
            return


def run_process(args: list[str],
                cancel_event: Optional[threading.Event] = None,
                progress: Optional[ProgressCounter] = None) -> int:
    """
    Run `args` to completion, feeding progress deltas into `progress`.

    Returns the last cumulative `out_time_us` reported by the process.
    Raises JobCancelled if `cancel_event` stopped it, ProcessFailure on a
    non-zero exit (stderr attached) and JobError(PROCESS_START) if it could
    not be started at all.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise JobCancelled()

    program = Path(str(args[0])).name
    try:
        proc = popen_streaming(args)
    except OSError as e:
        raise JobError(ErrorCode.PROCESS_START, f"Failed to start {program}: {e}")

    stderr_chunks: list[str] = []
    stderr_thread = threading.Thread(target=_drain, args=(proc.stderr, stderr_chunks),
                                     daemon=True)
    stderr_thread.start()

    finished = threading.Event()
    cancelled = threading.Event()
    watcher = None
    if cancel_event is not None:
        watcher = threading.Thread(target=_watch_cancel,
                                   args=(proc, cancel_event, finished, cancelled),
                                   daemon=True)
        watcher.start()

    parser = ProgressParser(progress)
    try:
        for line in proc.stdout:
            parser.feed(line)
        returncode = proc.wait()
    finally:
        finished.set()
        if proc.poll() is None:
            _terminate(proc)
        if watcher is not None:
            watcher.join()
        stderr_thread.join()
        proc.stdout.close()
        proc.stderr.close()

    if cancelled.is_set() or (returncode != 0 and cancel_event is not None and cancel_event.is_set()):
        raise JobCancelled()

    if returncode != 0:
        stderr = ''.join(stderr_chunks)
        tail = stderr.strip()[-STDERR_TAIL_CHARS:]
        logger.error("%s failed (rc=%s):\n%s", program, returncode, tail)
        raise ProcessFailure(f"{program} exited with code {returncode}: {tail[-300:]}",
                             returncode=returncode, stderr=stderr)

    return parser.last_reported_us
