"""
Checkpoint store: durable record of inputs that were fully transcoded.

One JSON file per scan root (or output directory):

    {"completed": {"/abs/in.mp4": {"input_file": ..., "output_file": ...,
                                   "input_size": ..., "input_mod_unix": ...,
                                   "completed_at": ...}}}

A record only counts while the input's (size, mtime) fingerprint is
unchanged and the output file still exists.
"""

import json
import os
import logging
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from vcompress.core.constants import CHECKPOINT_FILENAME
from vcompress.core.error_codes import CheckpointError, PersistenceFailure
from vcompress.core.cleanup import remove_file
from vcompress.core.models import CheckpointRecord

logger = logging.getLogger(__name__)


def checkpoint_path_for(input_path: str | Path, output_dir: str | Path | None = None) -> Path:
    """Checkpoint file location for a run over `input_path`."""
    if output_dir:
        return Path(output_dir) / CHECKPOINT_FILENAME
    input_path = Path(input_path)
    if input_path.is_dir():
        return input_path / CHECKPOINT_FILENAME
    return input_path.parent / CHECKPOINT_FILENAME


def fingerprint(path: str | Path) -> tuple[int, int]:
    """(size, mtime in whole unix seconds). Raises OSError if missing."""
    st = os.stat(path)
    return st.st_size, int(st.st_mtime)


class CheckpointStore:
    """
    Completed-job records shared by every worker of a run.
    Mark-and-persist happens under one lock so two jobs finishing together
    cannot interleave writes of the checkpoint file.
    """

    def __init__(self, path: Path, records: dict[str, CheckpointRecord] | None = None):
        self.path = Path(path)
        self.completed: dict[str, CheckpointRecord] = records or {}
        self._lock = threading.Lock()

    # ── Persistence ───────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> "CheckpointStore":
        """
        Load a store. A missing or blank file is a first run; anything that
        does not parse raises CheckpointError instead of discarding history.
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return cls(path)
        except OSError as e:
            raise CheckpointError(f"Cannot read {path}: {e}")

        if not raw.strip():
            return cls(path)

        try:
            data = json.loads(raw)
            entries = data.get('completed') or {}
            records = {key: CheckpointRecord.from_dict(value) for key, value in entries.items()}
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            raise CheckpointError(f"Malformed checkpoint file {path}: {e}")

        logger.debug("Loaded %d checkpoint records from %s", len(records), path)
        return cls(path, records)

    def save(self):
        """Write to a temp file and rename over the real one."""
        data = {'completed': {key: asdict(rec) for key, rec in self.completed.items()}}
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            remove_file(tmp)
            raise PersistenceFailure(f"Failed to save checkpoint {self.path}: {e}")

    # ── Queries / updates ─────────────────────────────────────────────

    def get(self, input_path: str) -> CheckpointRecord | None:
        with self._lock:
            return self.completed.get(input_path)

    def __len__(self) -> int:
        with self._lock:
            return len(self.completed)

    def is_fresh(self, input_path: str, output_path: str) -> bool:
        """True iff the input was completed to `output_path` and nothing changed since."""
        with self._lock:
            record = self.completed.get(input_path)
        if record is None or record.output_file != output_path:
            return False
        try:
            size, mod_unix = fingerprint(input_path)
        except OSError:
            return False
        if size != record.input_size or mod_unix != record.input_mod_unix:
            return False
        return os.path.exists(output_path)

    def mark_completed(self, input_path: str, output_path: str, size: int, mod_unix: int):
        """Insert/overwrite the record and persist immediately."""
        record = CheckpointRecord(
            input_file=input_path,
            output_file=output_path,
            input_size=int(size),
            input_mod_unix=int(mod_unix),
            completed_at=datetime.now().astimezone().isoformat(timespec='seconds'),
        )
        with self._lock:
            self.completed[input_path] = record
            self.save()

    def record_completion(self, input_path: str, output_path: str, size: int, mod_unix: int) -> bool:
        """
        mark_completed() for a job whose output is already final.
        A failed save is logged and reported as False; the job stays done
        and the file catches up on the next successful save.
        """
        try:
            self.mark_completed(input_path, output_path, size, mod_unix)
        except PersistenceFailure as e:
            logger.warning("Checkpoint not saved for %s: %s", Path(input_path).name, e.message)
            return False
        return True
