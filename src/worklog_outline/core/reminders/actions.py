"""Reminder action channel: schedule, dismiss, complete or remove a node's reminder."""

from dataclasses import dataclass
from datetime import date
from typing import Any

from loguru import logger

from worklog_outline.core.tokens.reminders import (
    REMINDER_MARKER_RE,
    ReminderRecord,
    build_reminder_marker,
)
from worklog_outline.core.tree.navigation import find_by_id
from worklog_outline.models.node import ContentElement, Node, TextRun

REMINDER_ACTIONS: tuple[str, ...] = ("schedule", "dismiss", "complete", "remove")


@dataclass(frozen=True)
class ReminderAction:
    """An out-of-band reminder command addressed to one node."""

    action: str
    task_id: str
    remind_at: str | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.action not in REMINDER_ACTIONS:
            msg = f"Unknown reminder action {self.action!r}, expected one of {REMINDER_ACTIONS!r}"
            raise ValueError(msg)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ReminderAction":
        """Build from the wire shape ``{action, taskId, remindAt?, message?}``."""
        return cls(
            action=str(payload.get("action") or ""),
            task_id=str(payload.get("taskId") or ""),
            remind_at=payload.get("remindAt") or None,
            message=payload.get("message") or None,
        )


@dataclass(frozen=True)
class ReminderActionResult:
    applied: bool
    reminder: ReminderRecord | None = None
    status_changed: bool = False
    added_today: bool = False
    reason: str = ""


def derive_reminder_update(
    existing: ReminderRecord | None,
    action: str,
    *,
    remind_at: str | None = None,
    message: str | None = None,
) -> ReminderRecord | None:
    """Reminder a node should carry after ``action``; None means no reminder."""
    if action not in REMINDER_ACTIONS:
        msg = f"Unknown reminder action {action!r}, expected one of {REMINDER_ACTIONS!r}"
        raise ValueError(msg)
    resolved_message = message or (existing.message if existing else "")

    if action == "schedule":
        if not remind_at:
            return existing
        return ReminderRecord("incomplete", remind_at, resolved_message)
    if action == "dismiss":
        if existing is None:
            return None
        return ReminderRecord("dismissed", existing.remind_at, existing.message)
    if action == "complete":
        if existing is not None:
            return ReminderRecord("completed", existing.remind_at, existing.message)
        if not remind_at:
            return None
        return ReminderRecord("completed", remind_at, resolved_message)
    return None


def _append_text(body: list[ContentElement], text: str) -> None:
    if body:
        last = body[-1]
        if isinstance(last, TextRun) and last.text:
            if not last.text[-1].isspace():
                body[-1] = TextRun(last.text + " ", last.marks)
        else:
            body.append(TextRun(" "))
    body.append(TextRun(text))


def rewrite_reminder(
    body: list[ContentElement],
    record: ReminderRecord | None,
    *,
    today_tag: str | None = None,
) -> list[ContentElement]:
    """Drop the current marker from ``body``, then append ``today_tag`` and the new marker.

    Text around a removed marker is kept; runs left empty are dropped.
    """
    result: list[ContentElement] = []
    removed = False
    for element in body:
        if not removed and isinstance(element, TextRun):
            match = REMINDER_MARKER_RE.search(element.text)
            if match:
                removed = True
                before = element.text[: match.start()]
                after = element.text[match.end() :]
                if before.strip():
                    result.append(TextRun(before.rstrip() + " ", element.marks))
                if after.strip():
                    result.append(TextRun(after.lstrip(), element.marks))
                continue
        result.append(element)

    if today_tag and not any(
        isinstance(e, TextRun) and today_tag in e.text for e in result
    ):
        _append_text(result, today_tag)
    if record is not None:
        _append_text(result, build_reminder_marker(record))
    return result


def apply_reminder_action(
    roots: list[Node],
    action: ReminderAction,
    *,
    today: date | None = None,
) -> ReminderActionResult:
    """Locate the node and rewrite its reminder marker; ``complete`` also marks it done."""
    node = find_by_id(roots, action.task_id)
    if node is None:
        logger.debug("Reminder action {} for unknown node {}", action.action, action.task_id)
        return ReminderActionResult(applied=False, reason="not-found")

    existing = node.reminder
    updated = derive_reminder_update(
        existing, action.action, remind_at=action.remind_at, message=action.message
    )
    if existing is None and updated is None:
        return ReminderActionResult(applied=False, reason="no-reminder")
    if action.action == "schedule" and updated is existing:
        return ReminderActionResult(applied=False, reminder=existing, reason="unchanged")

    today_tag = None
    if action.action == "complete":
        today_tag = f"@{(today or date.today()).isoformat()}"
    had_today = today_tag is not None and today_tag in node.text

    node.set_body(rewrite_reminder(node.body, updated, today_tag=today_tag))

    status_changed = False
    if action.action == "complete" and node.status != "done":
        node.set_status("done")
        status_changed = True

    logger.debug("Applied reminder action {} to node {}", action.action, action.task_id)
    return ReminderActionResult(
        applied=True,
        reminder=node.reminder,
        status_changed=status_changed,
        added_today=today_tag is not None and not had_today,
    )
