"""
Standardised error handling for VideoCompress.
"""

from vcompress.core.constants import ErrorCode, SKIP_CODES


class JobError(Exception):
    """Raised when a job encounters a known error condition."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ProcessFailure(JobError):
    """External process exited non-zero. Carries its captured stderr."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(ErrorCode.PROCESS_FAILED, message)


class JobCancelled(JobError):
    """The cancellation token was set while the job was running."""

    def __init__(self, message: str = "Cancelled by user"):
        super().__init__(ErrorCode.CANCELLED, message)


class PersistenceFailure(JobError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.PERSISTENCE, message)


class CheckpointError(JobError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.CHECKPOINT_CORRUPT, message)


class ScanError(JobError):
    def __init__(self, message: str):
        super().__init__(ErrorCode.SCAN, message)


def is_skip(code: str | None) -> bool:
    return code in SKIP_CODES
