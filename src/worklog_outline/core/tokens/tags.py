"""Tag, work-date and visibility-marker tokens found in node text."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from worklog_outline.core.tokens.reminders import strip_reminder_markers

# A tag must not be glued to a word or a path: ``path/to#file`` is not a tag.
TAG_SCAN_RE = re.compile(r"(^|[^0-9A-Za-z_/])#([a-zA-Z0-9][\w-]{0,63})\b", re.ASCII)
TAG_VALUE_RE = re.compile(r"^[a-zA-Z0-9][\w-]{0,63}$", re.ASCII)

DATE_RE = re.compile(r"@(\d{4}-\d{2}-\d{2})")

ARCHIVED_RE = re.compile(r"@archived\b", re.IGNORECASE)
FUTURE_RE = re.compile(r"@future\b", re.IGNORECASE)
SOON_RE = re.compile(r"@soon\b", re.IGNORECASE)

_WHITESPACE_RUN_RE = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class TagToken:
    """A tag as typed (``display``) and as compared (``canonical``, lower-case)."""

    canonical: str
    display: str


def extract_tags(text: str) -> tuple[TagToken, ...]:
    """Return the tags in ``text`` in first-seen order, one entry per canonical form."""
    if not text or "#" not in text:
        return ()
    seen: dict[str, TagToken] = {}
    for match in TAG_SCAN_RE.finditer(text):
        display = match.group(2)
        canonical = display.lower()
        if canonical not in seen:
            seen[canonical] = TagToken(canonical=canonical, display=display)
    return tuple(seen.values())


def parse_tag_input(value: str) -> TagToken | None:
    """Parse user input such as ``"#Work"`` or ``"work"`` into a tag."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip().lstrip("#").strip()
    if not trimmed or not TAG_VALUE_RE.match(trimmed):
        return None
    return TagToken(canonical=trimmed.lower(), display=trimmed)


def normalize_tag_list(values: Iterable[str]) -> list[str]:
    """Canonicalize, drop invalid entries, deduplicate and sort."""
    result: set[str] = set()
    for value in values:
        token = parse_tag_input(value)
        if token:
            result.add(token.canonical)
    return sorted(result)


def extract_dates(text: str) -> tuple[str, ...]:
    """Return the ``@YYYY-MM-DD`` work dates in ``text`` (without ``@``), first-seen order."""
    if not text or "@" not in text:
        return ()
    return tuple(dict.fromkeys(DATE_RE.findall(text)))


def marker_flags(text: str) -> tuple[bool, bool, bool]:
    """Return ``(archived, future, soon)`` for a node's own text."""
    if not text or "@" not in text:
        return False, False, False
    return (
        bool(ARCHIVED_RE.search(text)),
        bool(FUTURE_RE.search(text)),
        bool(SOON_RE.search(text)),
    )


def clean_title(text: str) -> str:
    """Display title: reminder markers and work dates removed, whitespace collapsed."""
    cleaned = DATE_RE.sub("", strip_reminder_markers(text or ""))
    return _WHITESPACE_RUN_RE.sub(" ", cleaned).strip()
