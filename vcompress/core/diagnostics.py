"""
Diagnostics: tool version detection.
"""

import shutil
import logging
import subprocess

from vcompress.core.subprocess_utils import run_subprocess_capture

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")


def get_tool_version(tool: str) -> str:
    """Return the first line of `<tool> -version`, or an error message."""
    try:
        result = run_subprocess_capture([tool, "-version"], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "Unknown"
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except (OSError, subprocess.TimeoutExpired) as e:
        return f"Error: {e}"


def missing_tools() -> list[str]:
    return [tool for tool in REQUIRED_TOOLS if not shutil.which(tool)]


def get_diagnostics() -> dict:
    """Gather all diagnostic information."""
    return {
        tool: {"path": shutil.which(tool), "version": get_tool_version(tool)}
        for tool in REQUIRED_TOOLS
    }
