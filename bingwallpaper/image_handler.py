"""
Image Handler

Utilities for fetching resources over HTTP and downloading the wallpaper image.

Every request made by bingwallpaper goes through http_get so that the same identification
header, timeouts and proxy are applied to the API call and to the image download alike.

Downloads are atomic from the caller's point of view: the body is streamed into a hidden
temporary file in the same directory as the target, validated as an image, then renamed
over the target. If anything goes wrong the temporary file is removed and whatever was at
the target path before is left untouched.
"""

import os
import tempfile
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError
import requests

from bingwallpaper.config import ProxySpec

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/98.0.4758.80 Safari/537.36 Edg/97.0.1072.69"
)

CONNECT_TIMEOUT = 15
READ_TIMEOUT = 15

CHUNK_SIZE = 64 * 1024


class InvalidImageError(Exception):
    """
    Raised when a provided binary input file is not an image. Wrapper around the PIL
    UnidentifiedImageError for better identification of errors during debugging
    and custom error messaging.
    """

    pass


class ImageDownloadError(Exception):
    """
    Raised when an image download is unsuccessful.
    """

    pass


def http_get(
    url: str, proxy: Optional[ProxySpec] = None, stream: bool = False
) -> requests.Response:
    """
    Issue a GET with the browser-like User-Agent, 15s connect and read timeouts and the
    configured proxy. requests follows redirects on our behalf. Network errors are raised
    as requests.exceptions.RequestException; the status code is left for the caller.
    """

    proxies = proxy.as_requests_proxies() if proxy is not None else None

    return requests.get(
        url,
        headers={"User-Agent": USER_AGENT},
        timeout=(CONNECT_TIMEOUT, READ_TIMEOUT),
        proxies=proxies,
        stream=stream,
    )


def validate_image(input) -> str:
    """
    Determine whether input is a valid image. PIL open method accepts a Path object, string, or file object (buffered stream).
    Opening only reads the content header, and verify() walks the file without decoding pixels,
    so this is safe to run on a freshly downloaded file.
    """

    try:
        with Image.open(input) as image:
            image.verify()
            return image.format

    except (UnidentifiedImageError, SyntaxError, OSError) as error:
        if isinstance(error, FileNotFoundError):
            raise InvalidImageError(f"Input {str(input)} could not be found.")

        raise InvalidImageError(f"Input {str(input)} does not appear to be an image.")


def _write_stream(response: requests.Response, file) -> int:
    written = 0
    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
        if chunk:
            file.write(chunk)
            written += len(chunk)

    file.flush()
    os.fsync(file.fileno())

    return written


def download_image(
    url: str, file_path: Path, proxy: Optional[ProxySpec] = None
) -> Path:
    """
    Download the image at url and atomically replace file_path with it. Returns the
    location on filesystem where the image was saved.

    If downloading the image fails for one of various reasons (network error, bad response
    status, truncated body, body is not an image, disk error) raise ImageDownloadError
    instead of failing silently. The previous file at file_path, if any, is never modified
    on failure.
    """

    destination_path = Path(file_path).expanduser().resolve()

    # edge case where destination path is a folder
    if destination_path.is_dir():
        raise ImageDownloadError(f"Destination file {destination_path} is a directory.")

    try:
        destination_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise ImageDownloadError(
            f"Cannot create directory {destination_path.parent}: {error}"
        )

    try:
        r = http_get(url, proxy=proxy, stream=True)

    except requests.exceptions.RequestException as error:
        raise ImageDownloadError(str(error))

    with r:
        # anything but 200 (including other 2XX) is treated as a failed download
        if r.status_code != 200:
            raise ImageDownloadError(
                f"Download error: something went wrong trying to access {url} (status code {r.status_code})"
            )

        # the temporary file must live in the destination directory so that the final
        # rename stays on one filesystem and is atomic.
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{destination_path.name}.",
                suffix=".part",
                dir=destination_path.parent,
            )
        except OSError as error:
            raise ImageDownloadError(
                f"Could not create a temporary file next to {destination_path}: {error}"
            )

        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "wb") as file:
                written = _write_stream(r, file)

            # Content-Length counts encoded bytes, iter_content yields decoded ones
            expected = r.headers.get("Content-Length")
            encoding = r.headers.get("Content-Encoding", "identity")
            if (
                encoding == "identity"
                and expected is not None
                and expected.isdigit()
                and written != int(expected)
            ):
                raise ImageDownloadError(
                    f"Download error: received {written} of {expected} bytes from {url}"
                )

            if written == 0:
                raise ImageDownloadError(f"Download error: {url} returned an empty body.")

            try:
                image_format = validate_image(tmp_path)
            except InvalidImageError:
                raise ImageDownloadError(
                    f"Download error: the target resource at {url} does not appear to be an image."
                )

            os.replace(tmp_path, destination_path)

        except requests.exceptions.RequestException as error:
            tmp_path.unlink(missing_ok=True)
            raise ImageDownloadError(f"Download of {url} was interrupted: {error}")

        except OSError as error:
            tmp_path.unlink(missing_ok=True)
            raise ImageDownloadError(f"Could not write {destination_path}: {error}")

        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    logger.debug("Saved %s image from %s to %s", image_format, url, destination_path)

    return destination_path
