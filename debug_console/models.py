"""Log record model — frozen dataclass + normalization of the three wire shapes."""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

# Legacy client line: "DD-MM-YYYY - HH:MM:SS CET [Module][Action] message"
LEGACY_PATTERN = re.compile(
    r"^(\d{2}-\d{2}-\d{4} - \d{2}:\d{2}:\d{2}) (CET|CEST) \[([\w\s]+)\]\[([\w\s]+)\] (.+)$"
)

LEGACY_TIMESTAMP_FORMAT = "%d-%m-%Y - %H:%M:%S"
LEGACY_TIMEZONE = ZoneInfo("Europe/Paris")

SEVERITIES = ("INFO", "WARN", "ERROR", "SUCCESS", "DEBUG", "SYSTEM")
SOURCE_LEVELS = ("default", "aggressive", "paranoic")
SOURCE_LEVEL_OFF = "off"


@dataclass(frozen=True)
class LogRecord:
    timestamp: datetime | None
    severity: str
    source_level: str
    category: str
    message: str
    data: dict | None = None
    raw: Any = field(default=None, compare=False)
    malformed: bool = False


@dataclass(frozen=True)
class BatchResponse:
    logs: list
    max_id: int


@dataclass(frozen=True)
class DebugUser:
    id: str
    nickname: str = ""
    debug_enabled: bool = False
    last_active: str | None = None
    debug_last_seen: str | None = None
    log_count: int = 0


def normalize_severity(value) -> str:
    """Map a free-text level onto one of SEVERITIES; unknown values become INFO."""
    lowered = str(value or "").lower()
    if "error" in lowered or "fail" in lowered:
        return "ERROR"
    if "warn" in lowered:
        return "WARN"
    if "success" in lowered:
        return "SUCCESS"
    if "debug" in lowered:
        return "DEBUG"
    if "system" in lowered:
        return "SYSTEM"
    return "INFO"


def normalize_source_level(value) -> str:
    if value is None or value is False:
        return SOURCE_LEVEL_OFF
    lowered = str(value).strip().lower()
    return lowered or SOURCE_LEVEL_OFF


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 string (or epoch millis) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=ZoneInfo("UTC"))
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=ZoneInfo("UTC"))
    return ts


def _first(obj: dict, *keys):
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def record_from_dict(obj: dict, raw=None) -> LogRecord:
    data = obj.get("data")
    return LogRecord(
        timestamp=parse_timestamp(_first(obj, "ts", "timestamp")),
        severity=normalize_severity(_first(obj, "level", "severity")),
        source_level=normalize_source_level(
            _first(obj, "debug_level", "source_level", "debugLevel")
        ),
        category=str(obj.get("category") or ""),
        message=str(_first(obj, "msg", "message") or ""),
        data=data if isinstance(data, dict) else None,
        raw=obj if raw is None else raw,
    )


def parse_legacy_line(line: str) -> LogRecord | None:
    """Parse the legacy text format. Returns None when the line doesn't match."""
    match = LEGACY_PATTERN.match(line.strip())
    if not match:
        return None

    ts_str, _tz_label, module, action, message = match.groups()
    try:
        timestamp = datetime.strptime(ts_str, LEGACY_TIMESTAMP_FORMAT).replace(
            tzinfo=LEGACY_TIMEZONE
        )
    except ValueError:
        timestamp = None

    return LogRecord(
        timestamp=timestamp,
        severity=normalize_severity(action),
        source_level=SOURCE_LEVEL_OFF,
        category=f"[{module.strip()}] [{action.strip()}]",
        message=message,
        raw=line,
    )


def parse_record(value) -> LogRecord:
    """Normalize one server log entry into a LogRecord.

    Never raises. Objects and JSON strings are read field by field, legacy
    lines through LEGACY_PATTERN; unmatched strings become an INFO record
    carrying the whole line as message. Any other shape is kept as a
    malformed record so the filters can show it rather than drop it.
    """
    if isinstance(value, LogRecord):
        return value

    if isinstance(value, dict):
        return record_from_dict(value)

    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("{"):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return record_from_dict(parsed, raw=value)

        legacy = parse_legacy_line(value)
        if legacy is not None:
            return legacy

        return LogRecord(
            timestamp=None,
            severity="INFO",
            source_level=SOURCE_LEVEL_OFF,
            category="",
            message=value,
            raw=value,
        )

    return LogRecord(
        timestamp=None,
        severity="INFO",
        source_level=SOURCE_LEVEL_OFF,
        category="",
        message=repr(value),
        raw=value,
        malformed=True,
    )


def parse_user(obj: dict) -> DebugUser:
    return DebugUser(
        id=str(obj["id"]),
        nickname=obj.get("nickname") or "",
        debug_enabled=bool(obj.get("debug_enabled")),
        last_active=obj.get("last_active"),
        debug_last_seen=obj.get("debug_last_seen"),
        log_count=_count(obj.get("log_count")),
    )


def _count(value) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True)
class UserStats:
    total: int
    debug_enabled: int
    with_logs: int
    total_logs: int


def filter_users(users: list[DebugUser], term: str | None) -> list[DebugUser]:
    """Case-insensitive substring match on nickname or id; empty term keeps all."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(users)
    return [u for u in users if needle in u.nickname.lower() or needle in u.id.lower()]


def user_stats(users: list[DebugUser]) -> UserStats:
    return UserStats(
        total=len(users),
        debug_enabled=sum(1 for u in users if u.debug_enabled),
        with_logs=sum(1 for u in users if u.log_count > 0),
        total_logs=sum(u.log_count for u in users),
    )
