"""
Tests for bing_handler.py

Validate that the archive request is built correctly and that every "nothing to offer"
answer from the archive is reported as None instead of an error.

*** MOCKING REQUEST CALLS ***

requests.get is patched in image_handler (where http_get lives) so no network call is
ever executed. The mock returns a real requests.Response built by the make_response
fixture (defined in conftest.py).
"""

import unittest.mock
from urllib.parse import urlparse, parse_qs

import pytest
import requests

from bingwallpaper.config import ProxySpec, ProxyType

# following entities are tested in this module:
from bingwallpaper.bing_handler import build_archive_url
from bingwallpaper.bing_handler import parse_descriptor
from bingwallpaper.bing_handler import resolve_daily_image
from bingwallpaper.bing_handler import ImageDescriptor
from bingwallpaper.image_handler import USER_AGENT


@pytest.mark.parametrize(
    ["width", "height"], [(1, 1), (1920, 1080), (3840, 2160), (5120, 2880)]
)
def test_build_archive_url_parameters(width, height):
    url = urlparse(build_archive_url(width, height, timestamp=1650000000))
    query = parse_qs(url.query)

    assert f"{url.scheme}://{url.netloc}" == "https://www.bing.com"
    assert url.path == "/HPImageArchive.aspx"
    assert query == {
        "format": ["js"],
        "idx": ["0"],
        "n": ["1"],
        "nc": ["1650000000"],
        "uhd": ["1"],
        "uhdwidth": [str(width)],
        "uhdheight": [str(height)],
    }


@unittest.mock.patch("bingwallpaper.bing_handler.time.time")
def test_build_archive_url_uses_current_timestamp(mock_time):
    mock_time.return_value = 1700000123.75

    query = parse_qs(urlparse(build_archive_url(800, 600)).query)

    assert query["nc"] == ["1700000123"]


@pytest.mark.parametrize(
    "payload",
    [
        {"images": []},
        {},
        {"images": None},
        {"images": [{}]},
        {"images": [{"url": ""}]},
        {"images": ["not-a-dict"]},
        [],
        "images",
    ],
)
def test_parse_descriptor_nothing_to_offer(payload):
    assert parse_descriptor(payload) is None


def test_parse_descriptor_uses_first_image():
    payload = {"images": [{"url": "/th?id=first.jpg"}, {"url": "/th?id=second.jpg"}]}

    assert parse_descriptor(payload, origin="https://example.test") == ImageDescriptor(
        url="https://example.test/th?id=first.jpg"
    )


@unittest.mock.patch("bingwallpaper.bing_handler.time.time")
@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_success(mock_get, mock_time, make_response):
    """
    Scenario: 3840x2160 requested, archive answers with a single relative url.
    The absolute url is the origin followed by the relative path.
    """

    mock_time.return_value = 1650000000
    mock_get.return_value = make_response(
        payload={"images": [{"url": "/th?id=abc.jpg", "title": "Somewhere"}]}
    )

    descriptor = resolve_daily_image(3840, 2160, origin="https://example.test")

    assert descriptor == ImageDescriptor(url="https://example.test/th?id=abc.jpg")

    requested_url = mock_get.call_args.args[0]
    query = parse_qs(urlparse(requested_url).query)
    assert requested_url.startswith("https://example.test/HPImageArchive.aspx?")
    assert query["uhdwidth"] == ["3840"]
    assert query["uhdheight"] == ["2160"]
    assert query["nc"] == ["1650000000"]


@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_request_discipline(mock_get, make_response):
    """
    The archive request carries the browser User-Agent, 15s connect/read timeouts and the
    configured proxy.
    """

    mock_get.return_value = make_response(payload={"images": []})
    proxy = ProxySpec(kind=ProxyType.HTTP, host="10.0.0.1", port=3128)

    resolve_daily_image(1920, 1080, proxy=proxy)

    kwargs = mock_get.call_args.kwargs
    assert kwargs["headers"] == {"User-Agent": USER_AGENT}
    assert kwargs["timeout"] == (15, 15)
    assert kwargs["proxies"] == {
        "http": "http://10.0.0.1:3128",
        "https": "http://10.0.0.1:3128",
    }


@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_empty_images(mock_get, make_response):
    """An empty images list on a 200 answer is "no image", not an error."""

    mock_get.return_value = make_response(status_code=200, payload={"images": []})

    assert resolve_daily_image(1920, 1080) is None


@pytest.mark.parametrize("status_code", [204, 301, 404, 500, 503])
@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_bad_status(mock_get, make_response, status_code):
    mock_get.return_value = make_response(
        status_code=status_code, payload={"images": [{"url": "/th?id=abc.jpg"}]}
    )

    assert resolve_daily_image(1920, 1080) is None


@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_invalid_json(mock_get, make_response):
    mock_get.return_value = make_response(body=b"<html>not json</html>")

    assert resolve_daily_image(1920, 1080) is None


@unittest.mock.patch("bingwallpaper.image_handler.requests.get", autospec=True)
def test_resolve_daily_image_network_error_propagates(mock_get):
    """Timeouts and connection errors are not "no image": the caller must see them."""

    mock_get.side_effect = requests.exceptions.ConnectTimeout

    with pytest.raises(requests.exceptions.RequestException):
        resolve_daily_image(1920, 1080)
