"""
Terminal progress bar built on tqdm.
Counts microseconds of processed media across every running job.
"""

import logging
import sys
import threading

from tqdm import tqdm

from vcompress.core.constants import MICROSECONDS


class TqdmProgressSink:
    """ProgressSink backed by a single tqdm bar, safe to call from workers."""

    def __init__(self, total_us: int, description: str = "Overall", file=None):
        self._lock = threading.Lock()
        self.bar = tqdm(
            total=max(1, int(total_us)),
            desc=description,
            file=file or sys.stderr,
            unit="s",
            unit_scale=1 / MICROSECONDS,
            dynamic_ncols=True,
            mininterval=0.1,
            bar_format="{desc}: {percentage:3.0f}%|{bar}| {n:.0f}/{total:.0f}s [{elapsed}<{remaining}]",
        )

    def add(self, n: int) -> None:
        with self._lock:
            self.bar.update(n)

    def clear(self) -> None:
        """Erase the bar; close() will not draw it again."""
        with self._lock:
            self.bar.leave = False
            self.bar.clear()

    def refresh(self) -> None:
        with self._lock:
            self.bar.refresh()

    def close(self) -> None:
        with self._lock:
            self.bar.close()


class TqdmLoggingHandler(logging.Handler):
    """Routes log records through tqdm.write so the live bar is redrawn around them."""

    def emit(self, record: logging.LogRecord):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except Exception:
            self.handleError(record)


def install_console_logging(level: int = logging.WARNING) -> TqdmLoggingHandler:
    handler = TqdmLoggingHandler(level=level)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logging.getLogger().addHandler(handler)
    return handler
