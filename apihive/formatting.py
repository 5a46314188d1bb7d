"""Display helpers for response records and history lines.

Presentation only: nothing here changes a ResponseRecord.
"""

from __future__ import annotations

import json

from apihive.models import HistoryEntry, ResponseRecord

SENSITIVE_MASK = "••••••"


def pretty_body(body: str) -> str:
    """Indent a JSON body for display; return anything else unchanged."""
    if not body:
        return ""
    try:
        parsed = json.loads(body)
    except ValueError:
        return body
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    return f"{size_bytes / 1024:.1f} KB"


def mask(value: str, sensitive: bool) -> str:
    return SENSITIVE_MASK if sensitive and value else value


def format_status_line(record: ResponseRecord) -> str:
    """e.g. "200 OK · 12ms · 1.2 KB"."""
    status = f"{record.status} {record.status_text}".strip()
    return f"{status} · {record.duration_ms}ms · {format_size(record.size_bytes)}"


def format_history_line(entry: HistoryEntry) -> str:
    timestamp = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"{timestamp}  {entry.status:>3}  {entry.method:<7} {entry.url}  "
        f"{entry.duration_ms}ms · {format_size(entry.size_bytes)}"
    )
