"""
Cleanup: temp outputs and segment workspaces.
"""

import os
import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_file(path: str | Path):
    """Delete a file if present. Failures are logged, not raised."""
    try:
        os.remove(path)
        logger.debug("Deleted: %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)


def remove_segment_workspace(workspace: Path):
    """
    Delete a finished segment workspace, then the shared `.vcparts`
    parent if no other job is using it.
    """
    if not workspace.exists():
        return
    try:
        shutil.rmtree(workspace)
        logger.debug("Deleted workspace: %s", workspace)
    except OSError as e:
        logger.warning("Failed to delete %s: %s", workspace, e)
        return

    parent = workspace.parent
    try:
        if parent.exists() and not any(parent.iterdir()):
            parent.rmdir()
            logger.debug("Removed empty segment root: %s", parent)
    except OSError:
        pass
