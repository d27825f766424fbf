from unittest.mock import MagicMock

import pytest

from services import cache


@pytest.fixture(autouse=True)
def clear_preview_cache():
    cache.clear()
    yield
    cache.clear()


def make_response(text: str = "", url: str = "https://example.com", status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.url = url
    response.status_code = status_code
    response.raise_for_status = MagicMock()
    return response
