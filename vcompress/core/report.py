"""
Report writer: final per-file summary of a run.
"""

from collections import Counter
from pathlib import Path

from vcompress.core.constants import ResultStatus, ErrorCode
from vcompress.core.models import ReportItem

_RULE = "=" * 80
_SEPARATOR = "-" * 80


def format_size(num_bytes: int) -> str:
    """1536 -> '1.5 KB' (binary units)."""
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"
    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{num_bytes / div:.1f} {'KMGTPE'[exp]}B"


def outcome(item: ReportItem) -> str:
    """
    Report bucket for an item: completed, failed, cancelled or skipped.
    A job stopped by the user is not a failure, and a discovery entry
    that could not be read is not a skip.
    """
    if item.status == ResultStatus.PROCESSED:
        return "completed"
    if item.error_code == ErrorCode.CANCELLED:
        return "cancelled"
    if item.status == ResultStatus.FAILED:
        return "failed"
    return "skipped"


def summarize(processed: list[ReportItem], ignored: list[ReportItem]) -> dict:
    """Aggregate counts for the report footer."""
    seen = Counter(outcome(item) for item in processed + ignored)
    return {
        'total': len(processed) + len(ignored),
        'processed': seen['completed'],
        'failed': seen['failed'],
        'cancelled': seen['cancelled'],
        'skipped': seen['skipped'],
    }


def _item_lines(item: ReportItem) -> list[str]:
    status = outcome(item)
    if status == "completed":
        reduction = item.original_size - item.new_size
        percent = (reduction / item.original_size * 100) if item.original_size > 0 else 0.0
        return [
            "    Status: completed",
            f"    Size:   {format_size(item.original_size)} -> {format_size(item.new_size)} "
            f"(saved {format_size(reduction)} / {percent:.1f}%)",
            f"    Command: {item.command}",
        ]
    return [
        f"    Status: {status}",
        f"    Reason: {item.reason}",
    ]


def format_report(processed: list[ReportItem], ignored: list[ReportItem]) -> str:
    """
    Processed/failed items first, then skipped ones, then the totals.
    Items are listed by input path so the report is stable between runs.
    """
    ordered = sorted(processed, key=lambda i: i.input_file) + sorted(ignored, key=lambda i: i.input_file)
    counts = summarize(processed, ignored)

    lines = ["", "Job report", _RULE]
    for index, item in enumerate(ordered, start=1):
        lines.append(f"[{index}/{counts['total']}] File: {Path(item.input_file).name}")
        lines.extend(_item_lines(item))
        lines.append(_SEPARATOR)

    lines.append(
        f"Total {counts['total']} | Completed {counts['processed']} | "
        f"Failed {counts['failed']} | Cancelled {counts['cancelled']} | Skipped {counts['skipped']}"
    )
    lines.append(_RULE)
    return "\n".join(lines)
