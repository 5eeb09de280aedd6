"""
Bing Image Archive API - Daily Image Resolver

This module is a wrapper around the public, unauthenticated Bing "HPImageArchive" endpoint
which describes the image of the day. It builds the archive request for the wanted
dimensions, asks for the descriptor and turns the relative image path it contains into an
absolute URL that image_handler.download_image can fetch.

A request looks like:

    https://www.bing.com/HPImageArchive.aspx?format=js&idx=0&n=1&nc=1650000000&uhd=1&uhdwidth=3840&uhdheight=2160

and the interesting part of the answer is:

    {"images": [{"url": "/th?id=OHR.SomeImage_UHD.jpg&rf=...&w=3840&h=2160", ...}]}

"Nothing to offer" (bad status, unreadable body, empty image list) is a normal outcome here
and is reported as None rather than as an error. Only network failures propagate.
"""

import time
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from bingwallpaper.config import ProxySpec
from bingwallpaper.image_handler import http_get

logger = logging.getLogger(__name__)

BING_URL = "https://www.bing.com"
ARCHIVE_PATH = "/HPImageArchive.aspx"


@dataclass(frozen=True)
class ImageDescriptor:
    """The image of the day, as an absolute URL."""

    url: str


def build_archive_url(
    width: int, height: int, timestamp: int = None, origin: str = BING_URL
) -> str:
    """
    Build the archive request url. The current unix timestamp is used as the "nc" cache
    buster unless one is supplied.
    """

    if timestamp is None:
        timestamp = int(time.time())

    query = urlencode(
        [
            ("format", "js"),
            ("idx", 0),
            ("n", 1),
            ("nc", timestamp),
            ("uhd", 1),
            ("uhdwidth", width),
            ("uhdheight", height),
        ]
    )

    return f"{origin}{ARCHIVE_PATH}?{query}"


def parse_descriptor(payload, origin: str = BING_URL) -> Optional[ImageDescriptor]:
    """
    Pull the first image out of a decoded archive response. Anything that does not match
    the expected shape yields None.
    """

    if not isinstance(payload, dict):
        return None

    images = payload.get("images")
    if not isinstance(images, list) or not images:
        return None

    first = images[0]
    relative_url = first.get("url") if isinstance(first, dict) else None
    if not isinstance(relative_url, str) or not relative_url:
        return None

    return ImageDescriptor(url=f"{origin}{relative_url}")


def resolve_daily_image(
    width: int,
    height: int,
    proxy: Optional[ProxySpec] = None,
    origin: str = BING_URL,
) -> Optional[ImageDescriptor]:
    """
    Ask the archive for today's image at width x height. Returns an ImageDescriptor or None
    when there is no image available. requests exceptions (timeouts, connection errors) are
    not caught here.
    """

    archive_url = build_archive_url(width, height, origin=origin)
    logger.debug("Requesting %s", archive_url)

    response = http_get(archive_url, proxy=proxy)

    if response.status_code != 200:
        logger.debug("Archive answered with status %s", response.status_code)
        return None

    try:
        payload = response.json()
    except ValueError:
        logger.debug("Archive response is not valid JSON")
        return None

    return parse_descriptor(payload, origin=origin)
