"""
Duration probe using ffprobe.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable

from vcompress.core.subprocess_utils import run_subprocess_capture
from vcompress.core.error_codes import JobError
from vcompress.core.constants import ErrorCode, PROBE_TIMEOUT_SEC

logger = logging.getLogger(__name__)

# path -> seconds, raises JobError(PROBE_FAILED)
Probe = Callable[[str], float]


def probe_duration(path: str | Path) -> float:
    """Get media duration in seconds using ffprobe."""
    args = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]

    try:
        result = run_subprocess_capture(args, timeout=PROBE_TIMEOUT_SEC)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise JobError(ErrorCode.PROBE_FAILED, f"ffprobe failed: {e}")

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise JobError(ErrorCode.PROBE_FAILED,
                       f"ffprobe failed (rc={result.returncode}): {stderr[:300]}")

    try:
        return float(result.stdout.strip())
    except ValueError:
        raise JobError(ErrorCode.PROBE_FAILED,
                       f"ffprobe returned no duration: {result.stdout.strip()[:100]!r}")
