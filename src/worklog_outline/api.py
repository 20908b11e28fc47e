"""Backing store client."""

from typing import Any

import requests
from loguru import logger

from worklog_outline.config import API_BASE_URL, REQUEST_TIMEOUT_SECONDS


class OutlineApi:
    """HTTP client for ``GET``/``POST {base_url}/outline``."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.sess = requests.Session()
        logger.debug("API ready: base_url {!r}, timeout {!r}", self.base_url, self.timeout)

    def _check(self, r: requests.Response, what: str) -> dict[str, Any]:
        r.raise_for_status()
        rv: dict[str, Any] = r.json()
        if not isinstance(rv, dict):
            msg = f"Unexpected {what} reply: {rv!r}"
            raise ValueError(msg)
        if rv.get("error"):
            msg = f"{what} failed: {rv['error']!r}"
            raise RuntimeError(msg)
        return rv

    def get_outline(self) -> list[dict[str, Any]]:
        """Fetch the stored outline, as a list of nested root records."""
        logger.debug("Loading outline from {}", self.base_url)
        r = self.sess.get(f"{self.base_url}/outline", timeout=self.timeout)
        rv = self._check(r, "Outline load")
        roots = rv.get("roots") or []
        if not isinstance(roots, list):
            msg = f"Unexpected roots in outline reply: {roots!r}"
            raise ValueError(msg)
        return roots

    def save_outline(self, outline: list[dict[str, Any]]) -> dict[str, str]:
        """Store the outline and return ``{temporary id: durable id}`` for new nodes."""
        logger.debug("Saving {} root records to {}", len(outline), self.base_url)
        r = self.sess.post(
            f"{self.base_url}/outline",
            json={"outline": outline},
            timeout=self.timeout,
        )
        rv = self._check(r, "Outline save")
        mapping = rv.get("newIdMap") or {}
        if not isinstance(mapping, dict):
            msg = f"Unexpected newIdMap in save reply: {mapping!r}"
            raise ValueError(msg)
        return {str(k): str(v) for k, v in mapping.items()}
