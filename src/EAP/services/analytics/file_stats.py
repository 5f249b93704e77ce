"""
Dashboard figures derived from the caller's file list.

Pure functions over FileRecord lists: the summary cards, the file-size bar
chart, the status pie and the upload timeline.
"""

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from EAP.services.database.repositories import FileRecord

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]
NAME_LIMIT = 15
RECENT_DAYS = 7


def format_file_size(size: int) -> str:
    """
    Human readable size with base-1024 units.

    Example:
        >>> format_file_size(0), format_file_size(1536), format_file_size(1048576)
        ('0 Bytes', '1.5 KB', '1 MB')
    """
    if size == 0:
        return "0 Bytes"
    index = 0
    while index < len(SIZE_UNITS) - 1 and size >= 1024 ** (index + 1):
        index += 1
    value = round(size / 1024 ** index, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[index]}"


def bytes_to_mb(size: int) -> float:
    return round(size / (1024 * 1024) * 100) / 100


def dashboard_stats(files: List[FileRecord]) -> Dict[str, Any]:
    """Figures for the three cards at the top of the dashboard."""
    total_size = sum(f.file_size for f in files)
    return {
        "total_files": len(files),
        "total_size": total_size,
        "total_size_label": format_file_size(total_size),
        "analytics_ready": sum(1 for f in files if f.status == "uploaded"),
    }


def summary_stats(files: List[FileRecord], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Figures for the analytics tab."""
    now = _naive(now or datetime.now(timezone.utc))
    sizes_mb = [bytes_to_mb(f.file_size) for f in files]
    total_mb = round(sum(sizes_mb) * 100) / 100
    cutoff = now - timedelta(days=RECENT_DAYS)

    return {
        "total_files": len(files),
        "total_size_mb": total_mb,
        "average_size_mb": round(sum(sizes_mb) / len(files) * 100) / 100 if files else 0,
        "recent_uploads": sum(1 for f in files if _naive(f.upload_date) > cutoff),
    }


def _naive(moment: datetime) -> datetime:
    return moment.replace(tzinfo=None) if moment.tzinfo else moment


def short_name(name: str, limit: int = NAME_LIMIT) -> str:
    return name[:limit] + ("..." if len(name) > limit else "")


def file_size_series(files: List[FileRecord]) -> List[Dict[str, Any]]:
    return [
        {"name": short_name(f.original_name), "size": bytes_to_mb(f.file_size), "fullName": f.original_name}
        for f in files
    ]


def status_distribution(files: List[FileRecord]) -> List[Dict[str, Any]]:
    """Count of files per status, in order of first appearance."""
    counts: "OrderedDict[str, int]" = OrderedDict()
    for f in files:
        counts[f.status] = counts.get(f.status, 0) + 1
    return [{"status": status, "count": count} for status, count in counts.items()]


def upload_timeline(files: List[FileRecord]) -> List[Dict[str, Any]]:
    """Uploads and total MB per calendar day, oldest first."""
    days: Dict[Any, Dict[str, Any]] = {}
    for f in files:
        day = _naive(f.upload_date).date()
        entry = days.setdefault(day, {"date": day.isoformat(), "uploads": 0, "totalSize": 0.0})
        entry["uploads"] += 1
        entry["totalSize"] += bytes_to_mb(f.file_size)

    timeline = [days[day] for day in sorted(days)]
    for entry in timeline:
        entry["totalSize"] = round(entry["totalSize"], 2)
    return timeline
