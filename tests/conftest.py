"""Shared fixtures for pr_heatmap tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest


def make_response(
    status_code: int = 200,
    json_data: Any = None,
    json_error: bool = False,
    text: str = "",
) -> MagicMock:
    """Build a fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def response_factory():
    """Factory for fake HTTP responses."""
    return make_response


@pytest.fixture
def session():
    """Fake requests.Session; set ``session.get.side_effect`` per test."""
    mock = MagicMock()
    mock.headers = {}
    return mock
