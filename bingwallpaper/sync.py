"""
Sync cycle

One cycle is: ask Bing for the image of the day -> skip if there is none or if it is the one
already applied -> download it over the target file -> hand the file to the wallpaper changer.

The url of the last image that was downloaded *and* applied is remembered in a DedupeState
for the lifetime of the process. It is only advanced when the changer reports success, so a
failed apply is retried on the next cycle.

Expected outcomes (no image, duplicate, download failure, apply failure) are returned as a
SyncOutcome and never raised. Anything unexpected propagates to the scheduler.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import requests

from bingwallpaper import bing_handler
from bingwallpaper import image_handler
from bingwallpaper.config import Configuration
from bingwallpaper.wallpaper_handler import WallpaperChanger
from bingwallpaper.cli_utils.console import confirm_success, describe, warn

logger = logging.getLogger(__name__)


class SyncOutcome(Enum):
    APPLIED = "applied"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    SKIPPED_NO_IMAGE = "skipped-no-image"
    FAILED = "failed"


@dataclass
class DedupeState:
    """Url of the last image successfully applied, None until the first success."""

    last_applied_url: Optional[str] = None


class SyncCycle:
    """
    Combine the resolver, the downloader and the selected wallpaper changer. The resolver and
    downloader default to the Bing archive and image_handler.download_image.
    """

    def __init__(
        self,
        config: Configuration,
        changer: WallpaperChanger,
        resolver: Callable = bing_handler.resolve_daily_image,
        downloader: Callable = image_handler.download_image,
        state: DedupeState = None,
    ):
        self.config = config
        self.changer = changer
        self.resolver = resolver
        self.downloader = downloader
        self.state = state if state is not None else DedupeState()

    def run(self) -> SyncOutcome:
        """Run one resolve -> download -> apply pass and report what happened."""

        try:
            descriptor = self.resolver(
                self.config.width, self.config.height, proxy=self.config.proxy
            )

        except requests.exceptions.RequestException as error:
            warn(f"could not reach the image archive: {error}")
            return SyncOutcome.FAILED

        if descriptor is None:
            describe(":zzz: no image of the day available right now")
            return SyncOutcome.SKIPPED_NO_IMAGE

        url = descriptor.url

        if url == self.state.last_applied_url:
            describe(":zzz: image of the day is already applied")
            return SyncOutcome.SKIPPED_DUPLICATE

        describe(f":earth_asia-emoji: getting image from {url} ...")

        try:
            target = self.downloader(url, self.config.target_path, proxy=self.config.proxy)

        except image_handler.ImageDownloadError as error:
            warn(f"download failed, will retry on the next cycle: {error}")
            return SyncOutcome.FAILED

        if not self.changer.apply_wallpaper(target):
            warn(
                f"{self.changer.name} could not apply {target}, will retry on the next cycle"
            )
            return SyncOutcome.FAILED

        self.state.last_applied_url = url
        confirm_success(
            f":white_check_mark-emoji: new wallpaper applied with success ({target})"
        )

        return SyncOutcome.APPLIED
