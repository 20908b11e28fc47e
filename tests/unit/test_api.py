"""Tests for OutlineApi, the HTTP client for the backing store."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from tests.unit.fakes import FakeApi
from worklog_outline.api import OutlineApi
from worklog_outline.protocols import OutlineApiProtocol


@pytest.fixture
def api_with_mock_session() -> tuple[OutlineApi, MagicMock]:
    """Create an OutlineApi with a mocked requests.Session."""
    with patch("worklog_outline.api.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        api = OutlineApi("http://store.test/api/", timeout=3)

    return api, mock_session


def _make_response(data: Any) -> MagicMock:
    """Create a mock HTTP response with given JSON data."""
    response = MagicMock()
    response.json.return_value = data
    return response


def test_get_outline_returns_roots(api_with_mock_session: tuple[OutlineApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.get.return_value = _make_response({"roots": [{"id": 1}]})

    assert api.get_outline() == [{"id": 1}]
    mock_session.get.assert_called_once_with("http://store.test/api/outline", timeout=3)


def test_get_outline_without_roots_is_empty(
    api_with_mock_session: tuple[OutlineApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.get.return_value = _make_response({})
    assert api.get_outline() == []


def test_save_outline_posts_and_returns_string_mapping(
    api_with_mock_session: tuple[OutlineApi, MagicMock],
) -> None:
    """Save sends the outline under ``outline`` and normalizes newIdMap values."""
    api, mock_session = api_with_mock_session
    mock_session.post.return_value = _make_response({"newIdMap": {"new-abc": 101}})

    mapping = api.save_outline([{"id": "new-abc", "title": "t", "children": []}])

    assert mapping == {"new-abc": "101"}
    args, kwargs = mock_session.post.call_args
    assert args == ("http://store.test/api/outline",)
    assert kwargs["json"] == {"outline": [{"id": "new-abc", "title": "t", "children": []}]}


def test_save_outline_with_no_new_ids(api_with_mock_session: tuple[OutlineApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.post.return_value = _make_response({"ok": True})
    assert api.save_outline([]) == {}


def test_error_field_raises_runtime_error(
    api_with_mock_session: tuple[OutlineApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.post.return_value = _make_response({"error": "locked"})

    with pytest.raises(RuntimeError, match="Outline save failed"):
        api.save_outline([])


@pytest.mark.parametrize("reply", [[1, 2], {"roots": "nope"}])
def test_malformed_reply_raises_value_error(
    api_with_mock_session: tuple[OutlineApi, MagicMock], reply: Any
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.get.return_value = _make_response(reply)

    with pytest.raises(ValueError, match="Unexpected"):
        api.get_outline()


def test_http_error_propagates(api_with_mock_session: tuple[OutlineApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.get.return_value.raise_for_status.side_effect = requests.HTTPError("500")

    with pytest.raises(requests.HTTPError, match="500"):
        api.get_outline()


def test_clients_satisfy_protocol(api_with_mock_session: tuple[OutlineApi, MagicMock]) -> None:
    api, _mock_session = api_with_mock_session
    assert isinstance(api, OutlineApiProtocol)
    assert isinstance(FakeApi(), OutlineApiProtocol)
