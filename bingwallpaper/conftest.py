"""
conftest.py

Test configuration for bingwallpaper tests.

Defines Pytest fixtures for supplying test data to tests across the entire
test suite. Fixtures used within only a single module are defined
directly in that module. Conftest.py should only be used for universal
fixtures to avoid unnecessary performance hit.

Network responses are real requests.Response objects whose raw stream is an
in-memory buffer, so iter_content(), json() and the context manager protocol
behave exactly as they do against a live server.
"""

import io
import json
from pathlib import Path

import pytest
from PIL import Image
from requests import Response
from requests.structures import CaseInsensitiveDict

from bingwallpaper.config import Configuration
from bingwallpaper.cli_utils import console


def _image_bytes(color: str, image_format: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 36), color=color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def test_image_bytes() -> bytes:
    """
    A small but complete JPEG image, generated once for the whole session.
    """

    return _image_bytes("steelblue")


@pytest.fixture(scope="session")
def other_image_bytes() -> bytes:
    """A second, different JPEG image."""

    return _image_bytes("darkorange")


@pytest.fixture
def test_image(tmp_path, test_image_bytes) -> Path:
    """
    Returns a Path pointing to a valid image written in the test's temporary directory.
    """

    path = tmp_path / "test_image.jpg"
    path.write_bytes(test_image_bytes)
    return path


@pytest.fixture
def make_response():
    """
    Factory for requests.Response objects. Pass either body (bytes), payload (encoded as
    JSON) or raw (any object requests can read the body from).
    """

    def inner(status_code=200, body=b"", payload=None, headers=None, raw=None, url=None):
        if payload is not None:
            body = json.dumps(payload).encode()

        response = Response()
        response.status_code = status_code
        response.headers = CaseInsensitiveDict(headers or {})
        response.raw = raw if raw is not None else io.BytesIO(body)
        response.url = url or "https://www.bing.com/"
        response.encoding = "utf-8"
        return response

    return inner


@pytest.fixture
def config(tmp_path) -> Configuration:
    """A Configuration writing the wallpaper into the test's temporary directory."""

    return Configuration(
        width=3840, height=2160, target_path=tmp_path / "bing-wallpaper.jpg"
    )


@pytest.fixture
def config_dir(tmp_path, monkeypatch) -> Path:
    """Point BINGWALLPAPER_CONFIG_DIR to an empty temporary directory."""

    directory = tmp_path / "settings"
    monkeypatch.setenv("BINGWALLPAPER_CONFIG_DIR", str(directory))
    return directory


@pytest.fixture(autouse=True)
def restore_console():
    """Tests switching to --quiet must not silence the console for later tests."""

    yield
    console.console.quiet = False
