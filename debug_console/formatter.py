"""Output formatters — display timestamp, text, colorized (ANSI), NDJSON."""

import json
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

from debug_console.models import LogRecord

DISPLAY_TIMEZONE = "Europe/Paris"

# ANSI color codes
COLORS = {
    "DEBUG": "\033[35m",    # magenta
    "INFO": "\033[34m",     # blue
    "WARN": "\033[33m",     # yellow
    "ERROR": "\033[31m",    # red
    "SUCCESS": "\033[32m",  # green
    "SYSTEM": "\033[36m",   # cyan
}
DIM = "\033[2m"
RESET = "\033[0m"

SOURCE_LEVEL_BADGES = {
    "default": "D",
    "aggressive": "A",
    "paranoic": "P",
}


def format_display_time(ts: datetime | None, tz_name: str = DISPLAY_TIMEZONE) -> str:
    """Return "HH:MM:SS CET" / "HH:MM:SS CEST" in the display timezone."""
    if ts is None:
        return "N/A"
    local = ts.astimezone(ZoneInfo(tz_name))
    return f"{local.strftime('%H:%M:%S')} {local.tzname()}"


def _data_suffix(record: LogRecord) -> str:
    if not record.data:
        return ""
    return " DATA: " + json.dumps(record.data, sort_keys=True, default=str)


def format_text(record: LogRecord, tz_name: str = DISPLAY_TIMEZONE) -> str:
    if record.malformed:
        return f"[INVALID LOG ENTRY] {record.message}"
    badge = SOURCE_LEVEL_BADGES.get(record.source_level, "-")
    category = record.category or "[General]"
    return (
        f"{format_display_time(record.timestamp, tz_name)} {record.severity:<7s} "
        f"{badge} {category} {record.message}{_data_suffix(record)}"
    )


def format_color(record: LogRecord, tz_name: str = DISPLAY_TIMEZONE) -> str:
    if record.malformed:
        return f"{COLORS['ERROR']}[INVALID LOG ENTRY]{RESET} {record.message}"
    color = COLORS.get(record.severity, "")
    badge = SOURCE_LEVEL_BADGES.get(record.source_level, "-")
    category = record.category or "[General]"
    return (
        f"{DIM}{format_display_time(record.timestamp, tz_name)}{RESET} "
        f"{color}{record.severity:<7s}{RESET} {badge} {category} "
        f"{record.message}{DIM}{_data_suffix(record)}{RESET}"
    )


def format_json(record: LogRecord, tz_name: str = DISPLAY_TIMEZONE) -> str:
    """Return NDJSON — one JSON object per line, compatible with jq."""
    return json.dumps({
        "timestamp": record.timestamp.isoformat() if record.timestamp else None,
        "display_time": format_display_time(record.timestamp, tz_name),
        "severity": record.severity,
        "source_level": record.source_level,
        "category": record.category,
        "message": record.message,
        "data": record.data,
        "malformed": record.malformed,
    }, default=str)


def get_formatter(
    output_format: str = "text",
    color: bool = False,
    tz_name: str = DISPLAY_TIMEZONE,
) -> Callable[[LogRecord], str]:
    """Factory that returns the right formatter based on args."""
    if output_format == "json":
        return lambda record: format_json(record, tz_name)
    if color:
        return lambda record: format_color(record, tz_name)
    return lambda record: format_text(record, tz_name)


@dataclass(frozen=True)
class ClientInfo:
    browser: str = "Unknown"
    os: str = "Unknown"
    device: str = "Desktop"
    platform: str = "Unknown"
    ip: str | None = None


_BROWSERS = [
    ("Edge", re.compile(r"Edg(?:e|A|iOS)?/")),
    ("Opera", re.compile(r"OPR/|Opera")),
    ("Firefox", re.compile(r"Firefox/|FxiOS/")),
    ("Chrome", re.compile(r"Chrome/|CriOS/")),
    ("Safari", re.compile(r"Safari/")),
]

_SYSTEMS = [
    ("Android", re.compile(r"Android")),
    ("iOS", re.compile(r"iPhone|iPad|iPod")),
    ("Windows", re.compile(r"Windows")),
    ("macOS", re.compile(r"Mac OS X|Macintosh")),
    ("Linux", re.compile(r"Linux")),
]


def describe_client(records: Iterable[LogRecord]) -> ClientInfo | None:
    """Derive browser/OS/device from the first record carrying client metadata."""
    for record in records:
        if not isinstance(record, LogRecord) or not record.data:
            continue
        data = record.data
        user_agent = data.get("userAgent") or data.get("user_agent")
        if not user_agent:
            continue
        browser = next((name for name, rx in _BROWSERS if rx.search(user_agent)), "Unknown")
        os_name = next((name for name, rx in _SYSTEMS if rx.search(user_agent)), "Unknown")
        if "iPad" in user_agent or "Tablet" in user_agent:
            device = "Tablet"
        elif "Mobi" in user_agent or os_name in ("Android", "iOS"):
            device = "Mobile"
        else:
            device = "Desktop"
        return ClientInfo(
            browser=browser,
            os=os_name,
            device=device,
            platform=str(data.get("platform") or "Unknown"),
            ip=data.get("ip"),
        )
    return None
