"""
Subprocess helpers for VideoCompress.
- Argument arrays only, shell=True is never used
- Captured runs for short tools (ffprobe, -version)
- Streaming launch for long-running encoders
"""

import subprocess
import logging

logger = logging.getLogger(__name__)


def _check_args(args) -> None:
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")


def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.
    """
    _check_args(args)

    # Force shell=False: remove any caller-supplied value, then set it once
    kwargs.pop('shell', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run(args, shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300, **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )


def popen_streaming(args: list[str]) -> subprocess.Popen:
    """
    Start a long-running process with stdout and stderr piped as text.
    stdin is closed so an encoder can never block waiting for a keypress.
    """
    _check_args(args)
    logger.debug("Starting subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.Popen(
        [str(a) for a in args],
        shell=False,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )


def format_command(args: list[str]) -> str:
    """Human-readable command line for reports and logs."""
    return ' '.join(str(a) for a in args)
