"""
Shared constants for VideoCompress.
Shared constants for the scanner, scheduler and CLI.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "VideoCompress"
APP_VERSION = "1.2.0"
CLI_NAME = "vc"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

APP_SUPPORT_DIR = HOME / "Library" / "Application Support" / APP_NAME
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"
LOG_DIR = HOME / "Library" / "Logs" / APP_NAME

# ── On-disk names ─────────────────────────────────────────────────────
CHECKPOINT_FILENAME = ".vc-resume.json"
SEGMENT_ROOT_DIRNAME = ".vcparts"
SEGMENT_META_FILENAME = "resume_meta.json"
CONCAT_LIST_FILENAME = "concat_list.txt"
SEGMENT_NAME_TEMPLATE = "seg_{idx:06d}{ext}"
TEMP_SUFFIX = ".vcpart"
MERGE_TEMP_SUFFIX = ".merge.vcpart"
COMPRESSED_MARKER = ".compressed"

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".mov")

# Muxer passed with -f, needed because temp files end in .vcpart
MUXER_BY_EXTENSION = {
    ".mp4": "mp4",
    ".m4v": "mp4",
    ".mov": "mov",
    ".mkv": "matroska",
}

# ── Result status values ──────────────────────────────────────────────
class ResultStatus:
    PROCESSED = "Processed"
    IGNORED = "Ignored"
    FAILED = "Failed"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Discovery
    SCAN = "ERR_SCAN"
    PROBE_FAILED = "ERR_PROBE_FAILED"
    DISCOVERY_FAILED = "ERR_DISCOVERY_FAILED"
    DUPLICATE_OUTPUT = "ERR_DUPLICATE_OUTPUT"
    USER_DECLINED = "ERR_USER_DECLINED"
    ALREADY_COMPRESSED = "ALREADY_COMPRESSED"
    CHECKPOINT_FRESH = "CHECKPOINT_FRESH"

    # Execution
    PROCESS_START = "ERR_PROCESS_START"
    PROCESS_FAILED = "ERR_PROCESS_FAILED"
    CANCELLED = "ERR_CANCELLED"
    FINALIZE = "ERR_FINALIZE"
    SEGMENT_WORKSPACE = "ERR_SEGMENT_WORKSPACE"
    SEGMENT_MISSING = "ERR_SEGMENT_MISSING"
    INPUT_STAT = "ERR_INPUT_STAT"
    UNEXPECTED = "ERR_UNEXPECTED"

    # Persistence
    PERSISTENCE = "ERR_PERSISTENCE"
    CHECKPOINT_CORRUPT = "ERR_CHECKPOINT_CORRUPT"

# Codes that describe a skipped item rather than a broken one
SKIP_CODES = {
    ErrorCode.USER_DECLINED,
    ErrorCode.ALREADY_COMPRESSED,
    ErrorCode.CHECKPOINT_FRESH,
}

# ── Encoding presets ──────────────────────────────────────────────────
class Preset:
    HIGH = "high"
    STANDARD = "standard"
    LOW = "low"

PRESETS = (Preset.HIGH, Preset.STANDARD, Preset.LOW)

DEFAULT_PRESET = Preset.STANDARD
DEFAULT_QUALITY = 0            # 0 = use the preset's value
DEFAULT_HWACCEL = "videotoolbox"
HIGH_PRESET_CRF = 24
STANDARD_Q = 50
LOW_Q = 40
SEGMENT_AUDIO_CODEC = "aac"
SEGMENT_AUDIO_BITRATE = "160k"

# ── Scheduling defaults ───────────────────────────────────────────────
DEFAULT_WORKERS = 2
DEFAULT_SEGMENT_SEC = 600      # 10 minutes
MICROSECONDS = 1_000_000

# ── Process runner ────────────────────────────────────────────────────
PROGRESS_KEY = "out_time_us"
CANCEL_POLL_SEC = 0.2
TERMINATE_GRACE_SEC = 5
STDERR_TAIL_CHARS = 2000
PROBE_TIMEOUT_SEC = 30
