"""CLI for the worklog outline (show, tags, reminders, status, collapse, focus, filters)."""

import asyncio
from pathlib import Path
from typing import Annotated

import requests
import typer
from loguru import logger

from worklog_outline.api import OutlineApi
from worklog_outline.config import API_BASE_URL, PREFERENCES_DB, resolve_data_directory
from worklog_outline.core.collapse.store import CollapseStore
from worklog_outline.core.database.store import SqliteKeyValueStore
from worklog_outline.core.filter.preferences import MARKER_KEYS, FilterPreferences
from worklog_outline.core.focus import StoredFocusLocation
from worklog_outline.core.reminders.actions import REMINDER_ACTIONS, ReminderAction
from worklog_outline.logging_config import configure_logging
from worklog_outline.models.node import STATUSES
from worklog_outline.session import OutlineSession

app = typer.Typer(help="Worklog outline: browse and edit your task outline.")
filter_app = typer.Typer(help="Show or change the stored filters.")
app.add_typer(filter_app, name="filter")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory with the local preferences database"),
]
ApiUrlOption = Annotated[
    str,
    typer.Option("--api-url", help="Base URL of the outline store", envvar="WORKLOG_API_URL"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show warnings and errors"),
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)


def _open_store(data_dir: Path | None) -> SqliteKeyValueStore:
    return SqliteKeyValueStore.open(data_dir or resolve_data_directory(), PREFERENCES_DB)


def _load_session(store: SqliteKeyValueStore, api_url: str) -> OutlineSession:
    session = OutlineSession(OutlineApi(api_url), store)
    try:
        asyncio.run(session.load())
    except (requests.RequestException, RuntimeError, ValueError) as exc:
        logger.error("Could not load the outline from {}: {}", api_url, exc)
        raise typer.Exit(1) from exc
    return session


def _save_or_fail(session: OutlineSession) -> None:
    if not asyncio.run(session.flush()):
        logger.error("Changes could not be saved: {}", session.saver.last_error)
        raise typer.Exit(1)


@app.command()
def show(
    max_depth: int | None = typer.Option(None, "--max-depth", "-m", help="Levels to show"),
    ids: bool = typer.Option(False, "--ids", help="Show node ids"),
    data_dir: DataDirOption = None,
    api_url: ApiUrlOption = API_BASE_URL,
) -> None:
    """Print the outline as markdown, with the stored filters and focus applied."""
    store = _open_store(data_dir)
    try:
        session = _load_session(store, api_url)
        typer.echo(session.render_markdown(max_depth=max_depth, show_ids=ids), nl=False)
    finally:
        store.close()


@app.command()
def tags(
    data_dir: DataDirOption = None,
    api_url: ApiUrlOption = API_BASE_URL,
) -> None:
    """List tags with the number of nodes carrying them."""
    store = _open_store(data_dir)
    try:
        session = _load_session(store, api_url)
        counts = session.tag_counts()
        if not counts:
            typer.echo("No tags.")
            return
        for tag, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
            typer.echo(f"#{tag}\t{count}")
    finally:
        store.close()


@app.command()
def remind(
    action: str = typer.Argument(..., help=f"One of: {', '.join(REMINDER_ACTIONS)}"),
    task_id: str = typer.Argument(..., help="Node id"),
    at: Annotated[
        str | None,
        typer.Option("--at", help="ISO timestamp, e.g. 2026-05-01T09:00:00Z"),
    ] = None,
    message: Annotated[str | None, typer.Option("--message", "-m", help="Reminder message")] = None,
    data_dir: DataDirOption = None,
    api_url: ApiUrlOption = API_BASE_URL,
) -> None:
    """Schedule, dismiss, complete or remove a node's reminder."""
    if action not in REMINDER_ACTIONS:
        typer.echo(f"Unknown action '{action}'. Use one of: {', '.join(REMINDER_ACTIONS)}")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        session = _load_session(store, api_url)
        result = session.apply_reminder_action(
            ReminderAction(action=action, task_id=task_id, remind_at=at, message=message)
        )
        if not result.applied:
            typer.echo(f"Nothing to do ({result.reason}).")
            return
        _save_or_fail(session)
        if result.reminder is None:
            typer.echo(f"Reminder removed from {task_id}.")
        else:
            typer.echo(f"Reminder on {task_id}: {result.reminder.status} {result.reminder.remind_at}")
    finally:
        store.close()


@app.command()
def status(
    task_id: str = typer.Argument(..., help="Node id"),
    new_status: str = typer.Argument(..., metavar="STATUS", help=f"One of: {', '.join(STATUSES)}"),
    data_dir: DataDirOption = None,
    api_url: ApiUrlOption = API_BASE_URL,
) -> None:
    """Set a node's status."""
    if new_status not in STATUSES:
        typer.echo(f"Unknown status '{new_status}'. Use one of: {', '.join(STATUSES)}")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        session = _load_session(store, api_url)
        if session.find(task_id) is None:
            typer.echo(f"Node '{task_id}' not found.")
            raise typer.Exit(1)
        session.set_status(task_id, new_status)
        _save_or_fail(session)
        typer.echo(f"{task_id}: {new_status}")
    finally:
        store.close()


def _set_collapsed(node_id: str, collapsed: bool, data_dir: Path | None) -> None:
    store = _open_store(data_dir)
    try:
        scope = StoredFocusLocation(store).read()
        ids = CollapseStore(store).set_collapsed(scope, node_id, collapsed)
        where = f"focus {scope}" if scope else "whole outline"
        typer.echo(f"{len(ids)} collapsed in {where}.")
    finally:
        store.close()


@app.command()
def collapse(node_id: str = typer.Argument(..., help="Node id"), data_dir: DataDirOption = None) -> None:
    """Collapse a node in the current focus scope."""
    _set_collapsed(node_id, True, data_dir)


@app.command()
def expand(node_id: str = typer.Argument(..., help="Node id"), data_dir: DataDirOption = None) -> None:
    """Expand a node in the current focus scope."""
    _set_collapsed(node_id, False, data_dir)


@app.command()
def focus(
    node_id: str | None = typer.Argument(None, help="Node id to zoom into"),
    clear: bool = typer.Option(False, "--clear", help="Leave focus mode"),
    data_dir: DataDirOption = None,
) -> None:
    """Show, set or clear the focus root."""
    store = _open_store(data_dir)
    try:
        location = StoredFocusLocation(store)
        if clear:
            location.write(None)
            typer.echo("Focus cleared.")
        elif node_id:
            location.write(node_id)
            typer.echo(f"Focus: {node_id}")
        else:
            typer.echo(f"Focus: {location.read() or '(none)'}")
    finally:
        store.close()


@filter_app.command("show")
def filter_show(data_dir: DataDirOption = None) -> None:
    """Print the stored filter configuration."""
    store = _open_store(data_dir)
    try:
        config = FilterPreferences(store).load()
        statuses = ", ".join(f"{s}={'on' if config.shows_status(s) else 'off'}" for s in STATUSES)
        typer.echo(f"status: {statuses}")
        typer.echo(
            f"archived: {'shown' if config.show_archived else 'hidden'}, "
            f"future: {'shown' if config.show_future else 'hidden'}, "
            f"soon: {'shown' if config.show_soon else 'hidden'}"
        )
        typer.echo(f"include: {' '.join(sorted(config.include_tags)) or '-'}")
        typer.echo(f"exclude: {' '.join(sorted(config.exclude_tags)) or '-'}")
    finally:
        store.close()


@filter_app.command("status")
def filter_status(
    name: str = typer.Argument(..., help=f"One of: {', '.join(STATUSES)}"),
    show_it: bool = typer.Option(True, "--show/--hide", help="Show or hide nodes with this status"),
    data_dir: DataDirOption = None,
) -> None:
    """Show or hide nodes by status."""
    if name not in STATUSES:
        typer.echo(f"Unknown status '{name}'. Use one of: {', '.join(STATUSES)}")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        FilterPreferences(store).set_status_visible(name, show_it)
        typer.echo(f"{name}: {'shown' if show_it else 'hidden'}")
    finally:
        store.close()


@filter_app.command("marker")
def filter_marker(
    name: str = typer.Argument(..., help="archived, future or soon"),
    show_it: bool = typer.Option(True, "--show/--hide", help="Show or hide marked nodes"),
    data_dir: DataDirOption = None,
) -> None:
    """Show or hide @archived, @future or @soon nodes."""
    if name not in MARKER_KEYS:
        typer.echo(f"Unknown marker '{name}'. Use one of: {', '.join(MARKER_KEYS)}")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        FilterPreferences(store).set_marker_visible(name, show_it)
        typer.echo(f"@{name}: {'shown' if show_it else 'hidden'}")
    finally:
        store.close()


@filter_app.command("tag")
def filter_tag(
    tag: str = typer.Argument(..., help="Tag, with or without '#'"),
    include: bool = typer.Option(False, "--include", help="Only show branches with this tag"),
    exclude: bool = typer.Option(False, "--exclude", help="Hide nodes with this tag"),
    clear: bool = typer.Option(False, "--clear", help="Remove the tag from both lists"),
    data_dir: DataDirOption = None,
) -> None:
    """Include or exclude a tag."""
    if sum((include, exclude, clear)) != 1:
        typer.echo("Pass exactly one of --include, --exclude, --clear.")
        raise typer.Exit(1)
    mode = "include" if include else "exclude" if exclude else None
    store = _open_store(data_dir)
    try:
        try:
            config = FilterPreferences(store).set_tag_mode(tag, mode)
        except ValueError as exc:
            typer.echo(str(exc))
            raise typer.Exit(1) from exc
        typer.echo(f"include: {' '.join(sorted(config.include_tags)) or '-'}")
        typer.echo(f"exclude: {' '.join(sorted(config.exclude_tags)) or '-'}")
    finally:
        store.close()
