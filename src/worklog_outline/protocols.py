"""Protocols for dependency injection in the outline editor."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class OutlineApiProtocol(Protocol):
    """Protocol for clients of the backing store."""

    def get_outline(self) -> list[dict[str, Any]]:
        """Return the stored root records."""
        ...

    def save_outline(self, outline: list[dict[str, Any]]) -> dict[str, str]:
        """Store the serialized outline and return the temporary-to-durable id mapping."""
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for string key/value persistence (preferences, collapse sets)."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with ``prefix``, sorted."""
        ...


@runtime_checkable
class FocusLocation(Protocol):
    """Protocol for the externally visible "current zoomed subtree" reference."""

    def read(self) -> str | None:
        """Return the focus root id, or None."""
        ...

    def write(self, node_id: str | None) -> None:
        """Record the focus root id (None clears it)."""
        ...
