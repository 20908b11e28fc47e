"""Reminder marker codec.

A reminder lives inline in a node's text as ``[[reminder|<status>|<remindAt>|<message>]]``
where the message segment is URL-encoded and optional. While text is being edited
the marker is carried in a *display* form with a zero-width space after ``[[`` so
that pasted marker-looking text is never mistaken for a live marker.

Every function here is total: malformed markers are plain text.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote, unquote

REMINDER_STATUSES: tuple[str, ...] = ("incomplete", "dismissed", "completed")

REMINDER_DISPLAY_BREAK = "\u200b"

# The marker word keeps its original spelling through encode and decode.
_ANY_PREFIX_RE = re.compile(rf"\[\[(?:{REMINDER_DISPLAY_BREAK})?(reminder)(?=\|)", re.IGNORECASE)
_DISPLAY_PREFIX_RE = re.compile(rf"\[\[{REMINDER_DISPLAY_BREAK}(reminder)(?=\|)", re.IGNORECASE)

# Matches both canonical and display forms.
REMINDER_MARKER_RE = re.compile(
    rf"\[\[(?:{REMINDER_DISPLAY_BREAK})?reminder\|([^|\]]*)\|([^|\]]*?)(?:\|([^\]]*))?\]\]",
    re.IGNORECASE,
)

# Characters encodeURIComponent leaves alone.
_URI_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class ReminderRecord:
    """A reminder attached to a node."""

    status: str = "incomplete"
    remind_at: str = ""
    message: str = ""


def encode_display_markers(text: str) -> str:
    """Rewrite every reminder marker prefix into its display form."""
    if not text:
        return text
    return _ANY_PREFIX_RE.sub(lambda m: f"[[{REMINDER_DISPLAY_BREAK}{m.group(1)}", text)


def decode_display_markers(text: str) -> str:
    """Rewrite display-form marker prefixes back to the canonical form."""
    if not text:
        return text
    return _DISPLAY_PREFIX_RE.sub(lambda m: f"[[{m.group(1)}", text)


def _is_valid_timestamp(value: str) -> bool:
    if not value:
        return True
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def parse_reminder_marker(text: str) -> ReminderRecord | None:
    """Return the first structurally valid reminder marker in ``text``."""
    if not isinstance(text, str) or "reminder" not in text.lower():
        return None
    for match in REMINDER_MARKER_RE.finditer(text):
        raw_status, raw_remind_at, raw_message = match.group(1), match.group(2), match.group(3)
        status = (raw_status or "incomplete").lower()
        if status not in REMINDER_STATUSES:
            continue
        if not _is_valid_timestamp(raw_remind_at):
            continue
        message = ""
        if raw_message:
            try:
                message = unquote(raw_message, errors="strict")
            except UnicodeDecodeError:
                message = raw_message
        return ReminderRecord(status=status, remind_at=raw_remind_at, message=message)
    return None


def build_reminder_marker(record: ReminderRecord) -> str:
    """Build the canonical marker text for ``record``."""
    parts = ["reminder", record.status or "incomplete", record.remind_at or ""]
    if record.message:
        parts.append(quote(record.message, safe=_URI_SAFE))
    return "[[" + "|".join(parts) + "]]"


def _collapse_spaces(text: str) -> str:
    return re.sub(r" {2,}", " ", text)


def remove_reminder_marker(text: str) -> str:
    """Remove the first reminder marker and any double space it leaves behind."""
    if not text:
        return text
    stripped = REMINDER_MARKER_RE.sub("", text, count=1)
    return _collapse_spaces(decode_display_markers(stripped)).strip()


def upsert_reminder_marker(text: str, marker: str | None) -> str:
    """Replace, append or (with ``marker=None``) remove the reminder marker in ``text``."""
    if marker is None:
        return remove_reminder_marker(text)
    if REMINDER_MARKER_RE.search(text or ""):
        return REMINDER_MARKER_RE.sub(lambda _m: marker, text, count=1)
    trimmed = (text or "").rstrip()
    if not trimmed:
        return marker
    return f"{trimmed} {marker}"


def strip_reminder_markers(text: str) -> str:
    """Drop every reminder marker from ``text`` (used for display titles)."""
    return REMINDER_MARKER_RE.sub("", text or "")


def reminder_is_due(record: ReminderRecord | None, now: datetime) -> bool:
    """True when an incomplete reminder's time has passed."""
    if record is None or record.status != "incomplete" or not record.remind_at:
        return False
    try:
        target = datetime.fromisoformat(record.remind_at.replace("Z", "+00:00"))
    except ValueError:
        return False
    if target.tzinfo is None and now.tzinfo is not None:
        target = target.replace(tzinfo=now.tzinfo)
    elif target.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=target.tzinfo)
    return target < now


def describe_time_until(record: ReminderRecord | None, now: datetime) -> str:
    """Describe the distance to a reminder, e.g. ``"in 5m"`` or ``"2h overdue"``."""
    if record is None or not record.remind_at:
        return ""
    try:
        target = datetime.fromisoformat(record.remind_at.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if target.tzinfo is None and now.tzinfo is not None:
        target = target.replace(tzinfo=now.tzinfo)
    elif target.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=target.tzinfo)
    diff_minutes = int((target - now).total_seconds() / 60)

    if diff_minutes <= 0:
        ago = abs(diff_minutes)
        if ago < 1:
            return "due now"
        if ago < 60:
            return f"{ago}m overdue"
        hours = round(ago / 60)
        if hours < 24:
            return f"{hours}h overdue"
        return f"{round(hours / 24)}d overdue"

    if diff_minutes < 60:
        return f"in {diff_minutes}m"
    hours = round(diff_minutes / 60)
    if hours < 24:
        return f"in {hours}h"
    return f"in {round(hours / 24)}d"
