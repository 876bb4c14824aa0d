"""Filter evaluator — level/severity allow-lists AND'd, query tokens OR'd."""

from typing import Callable, Iterable

from debug_console.formatter import format_display_time
from debug_console.models import LogRecord
from debug_console.query import CATEGORY, EXACT, TEXT, TIMESTAMP, QueryToken

TimeFormatter = Callable[[object], str]


def _normalize_choices(values: Iterable[str] | None) -> frozenset[str]:
    return frozenset(str(v).lower() for v in (values or ()) if str(v).strip())


def filter_by_source_level(record: LogRecord, levels: frozenset[str]) -> bool:
    """True if no level filter is active or the record's debug level is selected."""
    return not levels or record.source_level.lower() in levels


def filter_by_severity(record: LogRecord, severities: frozenset[str]) -> bool:
    return not severities or record.severity.lower() in severities


def token_matches(
    record: LogRecord,
    token: QueryToken,
    format_time: TimeFormatter = format_display_time,
) -> bool:
    """True if a single query token matches the record (case-insensitive)."""
    if token.kind in (EXACT, TEXT):
        haystack = f"{record.message} {record.category}".lower()
        return token.value.lower() in haystack
    if token.kind == CATEGORY:
        category = record.category.lower()
        return all(tag.lower() in category for tag in token.tags)
    if token.kind == TIMESTAMP:
        return token.value.lower() in format_time(record.timestamp).lower()
    return False


def record_matches(
    record,
    tokens: list[QueryToken],
    levels: frozenset[str] = frozenset(),
    severities: frozenset[str] = frozenset(),
    format_time: TimeFormatter = format_display_time,
) -> bool:
    """Decide whether one record is visible.

    Malformed entries are shown rather than hidden: losing a diagnostic
    line is worse than displaying a garbled one.
    """
    if not isinstance(record, LogRecord) or record.malformed:
        return True

    if not (filter_by_source_level(record, levels) and filter_by_severity(record, severities)):
        return False

    if not tokens:
        return True

    return any(token_matches(record, token, format_time) for token in tokens)


def build_predicate(
    tokens: list[QueryToken],
    levels: Iterable[str] | None = None,
    severities: Iterable[str] | None = None,
    format_time: TimeFormatter = format_display_time,
) -> Callable[[LogRecord], bool]:
    """Combine the active filters into a single callable."""
    level_set = _normalize_choices(levels)
    severity_set = _normalize_choices(severities)

    if not tokens and not level_set and not severity_set:
        return lambda record: True

    def combined(record) -> bool:
        return record_matches(record, tokens, level_set, severity_set, format_time)

    return combined


def filter_records(
    records: Iterable[LogRecord],
    tokens: list[QueryToken],
    levels: Iterable[str] | None = None,
    severities: Iterable[str] | None = None,
    format_time: TimeFormatter = format_display_time,
) -> list[LogRecord]:
    """Return the visible subset of *records*, preserving order."""
    predicate = build_predicate(tokens, levels, severities, format_time)
    return [record for record in records if predicate(record)]
