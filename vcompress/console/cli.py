"""
Command-line front end: `vc <input_file_or_dir> [flags]`.
Wires the scanner, scheduler, progress bar and report together and turns
SIGINT/SIGTERM into the run's cancellation token.
"""

import argparse
import logging
import signal
import sys
import threading
import time
from datetime import timedelta

from vcompress.core.constants import (
    APP_NAME, APP_VERSION, CLI_NAME, PRESETS, MICROSECONDS, ResultStatus,
)
from vcompress.core.config import AppConfig
from vcompress.core.error_codes import JobError
from vcompress.core.scanner import scan_jobs
from vcompress.core.scheduler import Scheduler
from vcompress.core.progress import ProgressCounter
from vcompress.core.command_builder import build_args
from vcompress.core.report import format_report, summarize
from vcompress.core.subprocess_utils import format_command
from vcompress.console.progress_bar import TqdmProgressSink, install_console_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_JOBS_FAILED = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=CLI_NAME,
        description=f"{APP_NAME}: batch HEVC compression with checkpoint/resume.",
    )
    parser.add_argument("input", help="video file or directory to compress")
    parser.add_argument("-o", "--output", default=None, help="output directory")
    parser.add_argument("-p", "--preset", type=str.lower, choices=PRESETS, default=None,
                        help="compression preset (default from config: standard)")
    parser.add_argument("-q", "--quality", type=int, default=None,
                        help="custom quality 1-100 (overrides the preset)")
    parser.add_argument("-w", "--workers", type=int, default=None,
                        help="number of files encoded concurrently")
    parser.add_argument("--segment-seconds", type=int, default=None,
                        help="segment length for single-file resume")
    parser.add_argument("--disable-segment-resume", action="store_true",
                        help="encode a single file in one pass")
    parser.add_argument("-y", "--yes", action="store_true",
                        help="overwrite existing outputs without asking")
    parser.add_argument("-v", "--verbose", action="store_true", help="show progress messages")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def prompt_overwrite(output_path: str) -> bool:
    """Ask on the terminal; anything but y/yes keeps the existing file."""
    print(f"\nOutput already exists: {output_path}")
    try:
        answer = input("Overwrite? (y/N): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def install_signal_handlers(cancel_event: threading.Event):
    def on_signal(signum, _frame):
        if not cancel_event.is_set():
            logger.warning("Interrupted, stopping current jobs and saving checkpoints...")
        cancel_event.set()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)


def exit_code_for(counts: dict) -> int:
    """Real failures win over a user stop; a clean or skip-only run is 0."""
    if counts['failed']:
        return EXIT_JOBS_FAILED
    if counts['cancelled']:
        return EXIT_CANCELLED
    return EXIT_OK


def finish_progress(progress: ProgressCounter, cancelled: bool):
    """Leave the final count on screen, or wipe a bar that stopped part way."""
    if cancelled:
        progress.clear()
    else:
        progress.refresh()


def run(argv: list[str] | None = None, app_config: AppConfig | None = None) -> int:
    args = build_parser().parse_args(argv)
    install_console_logging(logging.INFO if args.verbose else logging.WARNING)

    app_config = app_config or AppConfig()
    config = app_config.override(
        preset=args.preset,
        quality=args.quality,
        workers=args.workers,
        segment_seconds=args.segment_seconds,
        segment_resume=False if args.disable_segment_resume else None,
    )

    print("Scanning files and probing durations...")
    should_overwrite = (lambda _path: True) if args.yes else prompt_overwrite
    try:
        scan = scan_jobs(args.input, args.output, should_overwrite)
    except JobError as e:
        logger.error("%s", e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_FATAL

    skipped = sum(1 for item in scan.ignored if item.status == ResultStatus.IGNORED)
    if skipped:
        print(f"Skipped {skipped} file(s) that need no compression")

    if not scan.jobs:
        print("No video files need processing.")
        print(format_report([], scan.ignored))
        return exit_code_for(summarize([], scan.ignored))

    if len(scan.jobs) == 1:
        config['workers'] = 1

    print("-" * 48)
    print(f"Files to process: {len(scan.jobs)} (total {scan.total_duration_sec / 3600:.1f} h)")
    print(f"Workers: {config['workers']}")
    sample = build_args(scan.jobs[0].input_path, scan.jobs[0].output_path, config)
    print(f"Command preview: {format_command(sample)}")
    print("-" * 48)

    cancel_event = threading.Event()
    install_signal_handlers(cancel_event)

    sink = TqdmProgressSink(int(scan.total_duration_sec * MICROSECONDS))
    progress = ProgressCounter(sink)
    scheduler = Scheduler(scan.store, config, progress, cancel_event)

    start = time.monotonic()
    try:
        results = scheduler.process(scan.jobs)
        finish_progress(progress, cancel_event.is_set())
    finally:
        sink.close()

    print(format_report(results, scan.ignored))
    elapsed = timedelta(seconds=round(time.monotonic() - start))
    print(f"\nAll jobs finished in {elapsed}")

    return exit_code_for(summarize(results, scan.ignored))
