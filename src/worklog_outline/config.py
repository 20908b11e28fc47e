"""Configuration constants for the worklog outline editor."""

import os
from pathlib import Path

# Backing store. The far side serves GET/POST {API_BASE_URL}/outline.
API_BASE_URL: str = os.environ.get("WORKLOG_API_URL", "http://localhost:4000/api").rstrip("/")

REQUEST_TIMEOUT_SECONDS: float = 15.0

# Directory with local preferences. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/worklog-outline").expanduser(),
    Path("~/.worklog-outline").expanduser(),
    Path("~/.config/worklog-outline").expanduser(),
]

PREFERENCES_DB: str = "preferences.db"

# Storage keys, one entry per scope / preference.
COLLAPSED_KEY: str = "worklog.collapsed"
FILTER_STATUS_KEY: str = "worklog.filter.status"
FILTER_ARCHIVED_KEY: str = "worklog.filter.archived"
FILTER_FUTURE_KEY: str = "worklog.filter.future"
FILTER_SOON_KEY: str = "worklog.filter.soon"
FILTER_TAG_INCLUDE_KEY: str = "worklog.filter.tags.include"
FILTER_TAG_EXCLUDE_KEY: str = "worklog.filter.tags.exclude"
FOCUS_KEY: str = "worklog.focus"

# Quiet period before an edit is persisted, and the delay used to re-issue a
# save that was requested while another one was in flight.
SAVE_DEBOUNCE_SECONDS: float = 0.7
SAVE_RETRY_DELAY_SECONDS: float = 0.3

# Client-temporary ids carry this prefix until the store issues a durable one.
TEMP_ID_PREFIX: str = "new-"

STARTER_PLACEHOLDER_TITLE: str = "Start here"


def resolve_data_directory() -> Path:
    """Return the first existing data directory, or the preferred one if none exist."""
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
