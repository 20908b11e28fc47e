"""Key/value stores backing preferences and collapse sets."""

import sqlite3
from pathlib import Path

from worklog_outline.core.database.schema import migrate_schema


class SqliteKeyValueStore:
    """Key/value store on the ``preferences`` table.

    Every read goes to the database, so changes made by another process are
    seen on the next call.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        migrate_schema(conn)

    @classmethod
    def open(cls, data_dir: Path, filename: str) -> "SqliteKeyValueStore":
        data_dir.mkdir(parents=True, exist_ok=True)
        return cls(sqlite3.connect(str(data_dir / filename)))

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO preferences (key, value, updated_at) "
            "VALUES (?, ?, strftime('%s', 'now'))",
            (key, value),
        )
        self.conn.commit()

    def delete(self, key: str) -> None:
        self.conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
        self.conn.commit()

    def keys(self, prefix: str = "") -> list[str]:
        rows = self.conn.execute(
            "SELECT key FROM preferences WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        self.conn.close()


class MemoryKeyValueStore:
    """Dict-backed store for previews and tests."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self.data if k.startswith(prefix))
