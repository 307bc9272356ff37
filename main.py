#!/usr/bin/env python3
"""
VideoCompress main entry point for the `vc` command.
"""

import sys
import os
import logging
import traceback
from pathlib import Path
from datetime import datetime

# ── Ensure Homebrew paths are in PATH ────────────────────────────────
# Shells started from launchers don't always source ~/.zshrc, so
# Homebrew's bin directories may be missing and ffmpeg not found.
HOMEBREW_PATHS = [
    "/opt/homebrew/bin",          # Apple Silicon default
    "/opt/homebrew/sbin",
    "/usr/local/bin",             # Intel Mac default
    "/usr/local/sbin",
]

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from vcompress.core.constants import APP_NAME, APP_VERSION, LOG_DIR

logger = logging.getLogger("vcompress")


def extend_path():
    current_path = os.environ.get("PATH", "")
    for p in HOMEBREW_PATHS:
        if os.path.isdir(p) and p not in current_path.split(os.pathsep):
            current_path = p + os.pathsep + current_path
    os.environ["PATH"] = current_path


def setup_logging():
    """File log under ~/Library/Logs/VideoCompress/; the console handler is added by the CLI."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8"),
        ],
    )


def check_prerequisites():
    """Check that ffmpeg and ffprobe are available."""
    from vcompress.core.diagnostics import missing_tools, get_diagnostics

    missing = missing_tools()
    if missing:
        logger.error("Missing tools %s. PATH = %s", missing, os.environ.get("PATH", ""))
        print("Missing required tools: " + ", ".join(missing)
              + " (install with: brew install ffmpeg)", file=sys.stderr)
        sys.exit(1)

    for tool, info in get_diagnostics().items():
        logger.info("%s found at %s (%s)", tool, info["path"], info["version"])


def main(argv: list[str] | None = None):
    extend_path()
    setup_logging()
    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("=" * 60)

    try:
        check_prerequisites()
        from vcompress.console.cli import run
        sys.exit(run(argv))
    except Exception as e:
        logger.critical("Fatal error: %s: %s\n%s", type(e).__name__, e, traceback.format_exc())
        print(f"Fatal error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
