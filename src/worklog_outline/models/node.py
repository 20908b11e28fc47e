"""Domain models for the worklog outline."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from worklog_outline.core.tokens.reminders import ReminderRecord, parse_reminder_marker
from worklog_outline.core.tokens.tags import (
    TagToken,
    clean_title,
    extract_dates,
    extract_tags,
    marker_flags,
)

STATUS_NONE = "none"
STATUSES: tuple[str, ...] = (STATUS_NONE, "todo", "in-progress", "done")

# Cycling order; the store spells "none" as an empty string.
STATUS_ORDER: tuple[str, ...] = ("todo", "in-progress", "done", STATUS_NONE)

# Stand-in character for an embedded media element in a node's plain text.
MEDIA_PLACEHOLDER = "\ufffc"


@dataclass(frozen=True)
class TextRun:
    """A run of text sharing the same marks (bold, code, ...)."""

    text: str
    marks: tuple[str, ...] = ()
    kind: Literal["text"] = "text"


@dataclass(frozen=True)
class MediaRef:
    """An embedded image or file reference."""

    src: str
    alt: str = ""
    kind: Literal["media"] = "media"


@dataclass(frozen=True)
class HardBreak:
    """A line break inside a node's body."""

    kind: Literal["break"] = "break"


ContentElement = TextRun | MediaRef | HardBreak


def element_text(element: ContentElement) -> str:
    match element:
        case TextRun(text=text):
            return text
        case HardBreak():
            return "\n"
        case MediaRef():
            return MEDIA_PLACEHOLDER
    msg = f"Unknown content element: {element!r}"
    raise ValueError(msg)


def body_text(body: Iterable[ContentElement]) -> str:
    """Plain text of a body; every element maps to a fixed span of characters."""
    return "".join(element_text(e) for e in body)


def body_from_text(text: str) -> list[ContentElement]:
    """Build a body from plain text, turning newlines into hard breaks."""
    body: list[ContentElement] = []
    for i, line in enumerate(text.split("\n")):
        if i:
            body.append(HardBreak())
        if line:
            body.append(TextRun(line))
    return body


def normalize_status(value: Any) -> str | None:
    """Map a stored status to its model value, or None when it is not recognised."""
    if value is None or value == "":
        return STATUS_NONE
    if isinstance(value, str) and value in STATUSES:
        return value
    return None


def status_to_wire(status: str) -> str:
    return "" if status == STATUS_NONE else status


def cycle_status(status: str) -> str:
    """Next status in the ``todo -> in-progress -> done -> none`` cycle."""
    try:
        idx = STATUS_ORDER.index(status)
    except ValueError:
        return STATUS_ORDER[0]
    return STATUS_ORDER[(idx + 1) % len(STATUS_ORDER)]


@dataclass(eq=False)
class Node:
    """A single node of the outline tree.

    ``body`` is authoritative. Everything below the ``children``/``collapsed``
    fields is derived from it and recomputed by :meth:`refresh`, which every
    body mutation goes through (:meth:`set_body`, :meth:`set_text`).

    Nodes compare by identity; two nodes with the same content are still
    distinct tree positions.
    """

    id: str | None = None
    body: list[ContentElement] = field(default_factory=list)
    status: str = STATUS_NONE
    children: list["Node"] = field(default_factory=list)
    collapsed: bool = False

    title: str = field(default="", init=False)
    tags: tuple[str, ...] = field(default=(), init=False)
    tag_tokens: tuple[TagToken, ...] = field(default=(), init=False)
    archived_self: bool = field(default=False, init=False)
    future_self: bool = field(default=False, init=False)
    soon_self: bool = field(default=False, init=False)
    reminder: ReminderRecord | None = field(default=None, init=False)
    dates: tuple[str, ...] = field(default=(), init=False)

    def __post_init__(self) -> None:
        if self.status not in STATUSES:
            msg = f"Unknown status {self.status!r}, expected one of {STATUSES!r}"
            raise ValueError(msg)
        self.body = list(self.body)
        self.refresh()

    @classmethod
    def from_text(cls, text: str, **kwargs: Any) -> "Node":
        return cls(body=body_from_text(text), **kwargs)

    @property
    def text(self) -> str:
        return body_text(self.body)

    @property
    def is_empty(self) -> bool:
        """No text (whitespace aside), no media, no children."""
        if self.children:
            return False
        return not any(e.kind == "media" for e in self.body) and not self.text.strip()

    def refresh(self) -> None:
        """Recompute every derived attribute from the current body."""
        text = self.text
        self.title = clean_title(text)
        self.tag_tokens = extract_tags(text)
        self.tags = tuple(t.canonical for t in self.tag_tokens)
        self.archived_self, self.future_self, self.soon_self = marker_flags(text)
        self.reminder = parse_reminder_marker(text)
        self.dates = extract_dates(text)

    def set_body(self, body: Iterable[ContentElement]) -> None:
        self.body = list(body)
        self.refresh()

    def set_text(self, text: str) -> None:
        self.set_body(body_from_text(text))

    def set_status(self, status: str) -> None:
        if status not in STATUSES:
            msg = f"Unknown status {status!r}, expected one of {STATUSES!r}"
            raise ValueError(msg)
        self.status = status
