"""
Shared pytest fixtures: in-memory images and fake HTTP responses.
"""

import base64
import io
import json
from unittest.mock import MagicMock

import pytest
from PIL import Image


def _jpeg_bytes(width=64, height=48, color=(20, 90, 160)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, "JPEG")
    return buffer.getvalue()


@pytest.fixture
def make_jpeg():
    return _jpeg_bytes


@pytest.fixture
def jpeg_data_url():
    return "data:image/jpeg;base64," + base64.b64encode(_jpeg_bytes()).decode("ascii")


@pytest.fixture
def make_response():
    """Factory for a requests.Response stand-in."""
    def _make(status=200, body=None, text=None):
        response = MagicMock()
        response.status_code = status
        response.ok = 200 <= status < 300
        if text is None:
            text = "" if body is None else json.dumps(body)
        response.text = text
        response.json.side_effect = lambda: json.loads(text)
        response.content = text.encode("utf-8")
        return response
    return _make


@pytest.fixture
def session():
    """A requests.Session double; set .request / .get return values per test."""
    return MagicMock()
