"""Query tokenizer — quoted phrases, bracket tags, timestamps and bare words."""

import re
from dataclasses import dataclass

from debug_console.taxonomy import STATIC_TAXONOMY, TaxonomyMap

EXACT = "exact"
CATEGORY = "category"
TIMESTAMP = "timestamp"
TEXT = "text"

# Consumed characters are masked with NUL in the working view so later
# passes can neither match across nor re-read them.
_MASK = "\x00"

QUOTE_PATTERN = re.compile(r"'([^'\x00]*)'")
BRACKET_PATTERN = re.compile(r"\[([^\[\]\x00]*)\]")
WORD_PATTERN = re.compile(r"[^\s\x00]+")


@dataclass(frozen=True)
class QueryToken:
    kind: str
    value: str
    tags: tuple[str, ...] = ()
    spans: tuple[tuple[int, int], ...] = ()


def _mask(query: str, consumed: list[tuple[int, int]]) -> str:
    chars = list(query)
    for start, end in consumed:
        chars[start:end] = _MASK * (end - start)
    return "".join(chars)


def _extract_quoted(query: str, consumed: list) -> list[QueryToken]:
    tokens = []
    for match in QUOTE_PATTERN.finditer(query):
        consumed.append(match.span())
        phrase = match.group(1).strip()
        if phrase:
            tokens.append(QueryToken(EXACT, phrase, spans=(match.span(),)))
    return tokens


def _extract_brackets(view: str, consumed: list, taxonomy: TaxonomyMap) -> list[QueryToken]:
    groups: list[tuple[list[str], list[tuple[int, int]]]] = []
    for match in BRACKET_PATTERN.finditer(view):
        consumed.append(match.span())
        tag = match.group(1).strip()
        if not tag:
            continue
        if groups:
            tags, spans = groups[-1]
            # A tag repeated within the group adds nothing to it.
            if tag.lower() in (t.lower() for t in tags):
                spans.append(match.span())
                continue
            # Drill-down: a known sub-tag of the previous group's main
            # category narrows that group instead of opening a new one.
            if taxonomy.is_sub_tag(tags[0], tag):
                tags.append(tag)
                spans.append(match.span())
                continue
        groups.append(([tag], [match.span()]))

    return [
        QueryToken(
            CATEGORY,
            " ".join(f"[{t}]" for t in tags),
            tags=tuple(tags),
            spans=tuple(spans),
        )
        for tags, spans in groups
    ]


def _extract_words(view: str) -> list[QueryToken]:
    tokens = []
    for match in WORD_PATTERN.finditer(view):
        word = match.group(0)
        kind = TIMESTAMP if ":" in word else TEXT
        tokens.append(QueryToken(kind, word, spans=(match.span(),)))
    return tokens


def tokenize(query: str, taxonomy: TaxonomyMap | None = None) -> list[QueryToken]:
    """Parse a free-text query into tokens.

    Three passes over the unchanged input: single-quoted phrases, then
    bracket groups, then whitespace-delimited words. Each pass only sees
    characters no earlier pass consumed. Unterminated quotes or brackets
    fall through to the word pass. An empty query yields no tokens.
    """
    if not query or not query.strip():
        return []
    if taxonomy is None:
        taxonomy = STATIC_TAXONOMY

    consumed: list[tuple[int, int]] = []
    tokens = _extract_quoted(query, consumed)
    tokens += _extract_brackets(_mask(query, consumed), consumed, taxonomy)
    tokens += _extract_words(_mask(query, consumed))
    return tokens


def category_path(tokens: list[QueryToken]) -> list[str]:
    """Tags of the last category group, the current drill-down position."""
    for token in reversed(tokens):
        if token.kind == CATEGORY:
            return list(token.tags)
    return []


def append_tag(query: str, tag: str) -> str:
    """Append a bracket tag to the query, as the drill-down picker does."""
    stripped = (query or "").rstrip()
    if stripped:
        return f"{stripped} [{tag}]"
    return f"[{tag}]"
