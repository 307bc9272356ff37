"""
ffmpeg argument builder.
Encoding policy only; the scheduler treats the result as an opaque argv.
"""

from pathlib import Path

from vcompress.core.constants import (
    Preset, DEFAULT_PRESET, DEFAULT_HWACCEL, HIGH_PRESET_CRF, STANDARD_Q, LOW_Q,
    MUXER_BY_EXTENSION, SEGMENT_AUDIO_CODEC, SEGMENT_AUDIO_BITRATE,
)


def _muxer_for(final_path: str) -> str | None:
    return MUXER_BY_EXTENSION.get(Path(final_path).suffix.lower())


def _strip_temp_suffix(path: str) -> str:
    """`x.mp4.vcpart` / `x.mp4.merge.vcpart` -> `x.mp4`, for muxer lookup."""
    name = str(path)
    for suffix in (".merge.vcpart", ".vcpart"):
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return name


def _q_value(cfg: dict) -> str:
    quality = int(cfg.get('quality') or 0)
    if quality > 0:
        return str(quality)
    if cfg.get('preset') == Preset.LOW:
        return str(LOW_Q)
    return str(STANDARD_Q)


def _video_args(cfg: dict) -> list[str]:
    preset = cfg.get('preset', DEFAULT_PRESET)
    quality = int(cfg.get('quality') or 0)

    if preset == Preset.HIGH:
        crf = HIGH_PRESET_CRF
        if quality > 0:
            crf = max(0, 51 - quality // 2)
        # format=yuv420p works for both hw and sw decoded frames
        return [
            "-c:v", "libx265",
            "-crf", str(crf),
            "-preset", "medium",
            "-vf", "format=yuv420p",
            "-tag:v", "hvc1",
        ]

    return [
        "-c:v", "hevc_videotoolbox", "-q:v", _q_value(cfg),
        "-profile:v", "main10", "-tag:v", "hvc1", "-pix_fmt", "p010le",
    ]


def _input_args(cfg: dict) -> list[str]:
    hwaccel = cfg.get('hwaccel', DEFAULT_HWACCEL)
    return ["-hwaccel", hwaccel] if hwaccel else []


def _common_args() -> list[str]:
    return [
        "-progress", "pipe:1", "-nostats", "-hide_banner",
        "-map_metadata", "0", "-movflags", "+faststart",
        "-ignore_unknown",
        "-err_detect", "ignore_err",
    ]


def _output_args(output_file: str) -> list[str]:
    muxer = _muxer_for(_strip_temp_suffix(output_file))
    args = ["-f", muxer] if muxer else []
    args.append(str(output_file))
    return args


def build_args(input_file: str, output_file: str, cfg: dict) -> list[str]:
    """Whole-file encode. Audio is stream-copied."""
    args = ["ffmpeg", "-y"]
    args += _input_args(cfg)
    args += ["-i", str(input_file)]
    args += _common_args()
    args += _video_args(cfg)
    args += ["-c:a", "copy"]
    args += _output_args(output_file)
    return args


def build_segment_args(input_file: str, output_file: str, cfg: dict,
                       start_sec: float, duration_sec: float) -> list[str]:
    """
    One time slice. Audio is re-encoded so segments concatenate without
    gaps or timestamp drift.
    """
    args = ["ffmpeg", "-y"]
    args += _input_args(cfg)
    args += [
        "-ss", f"{start_sec:.3f}",
        "-t", f"{duration_sec:.3f}",
        "-i", str(input_file),
    ]
    args += _common_args()
    args += _video_args(cfg)
    args += ["-c:a", SEGMENT_AUDIO_CODEC, "-b:a", SEGMENT_AUDIO_BITRATE]
    args += _output_args(output_file)
    return args


def build_concat_args(list_file: str, output_file: str) -> list[str]:
    """Lossless concat demuxer, no re-encode."""
    args = [
        "ffmpeg", "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(list_file),
        "-progress", "pipe:1", "-nostats", "-hide_banner",
        "-c", "copy",
        "-movflags", "+faststart",
    ]
    args += _output_args(output_file)
    return args
