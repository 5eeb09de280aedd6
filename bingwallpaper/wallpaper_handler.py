"""
Desktop Wallpaper Handler

This module knows how to set the desktop background on each supported platform. Every
platform is a WallpaperChanger with two questions to answer:

    can_run_on_this_system()  - side-effect free, based on sys.platform and, for GNOME, on
                                the desktop environment variables of the session
    apply_wallpaper(path)     - hand the file to the OS and report True/False

The set of changers is small and closed. WALLPAPER_CHANGERS lists them in priority order
and select_changer() always picks the first one that can run, so the outcome is the same
every time even if more than one could claim the current system.

GNOME: drop into the gsettings CLI, which avoids a PyGObject dependency. Settings for desktop
backgrounds are defined under the schema org.gnome.desktop.background. More information on
this schema can be found at:
https://github.com/GNOME/gsettings-desktop-schemas/blob/master/schemas/org.gnome.desktop.background.gschema.xml.in

macOS: ask Finder through osascript.

Windows: SystemParametersInfoW from user32 through ctypes.
"""

import os
import sys
import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class WallpaperUpdateError(Exception):
    """
    Raised when no wallpaper changer is able to run on this system.
    """

    pass


def _is_blank(img_path) -> bool:
    return img_path is None or not str(img_path).strip()


class WallpaperChanger:
    """Base class for a platform specific way of changing the desktop background."""

    name = "generic"

    def can_run_on_this_system(self) -> bool:
        raise NotImplementedError

    def apply_wallpaper(self, img_path) -> bool:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class GnomeWallpaperChanger(WallpaperChanger):
    """GNOME (and Unity, which shares its settings schema) on Linux and other Unix-likes."""

    name = "GNOME"

    UNIX_PLATFORMS = ("linux", "freebsd", "openbsd", "netbsd", "sunos", "aix")
    DESKTOP_MARKERS = ("GNOME", "UNITY")

    def can_run_on_this_system(self) -> bool:
        if not sys.platform.startswith(self.UNIX_PLATFORMS):
            return False

        desktop = os.environ.get("XDG_CURRENT_DESKTOP") or os.environ.get(
            "DESKTOP_SESSION"
        )
        desktop = (desktop or "").upper()

        return any(marker in desktop for marker in self.DESKTOP_MARKERS)

    def _gsettings_set(self, key: str, value: str) -> bool:
        try:
            subprocess.run(
                ["gsettings", "set", "org.gnome.desktop.background", key, value],
                check=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )

        except subprocess.CalledProcessError as error:
            logger.debug("gsettings could not set %s: %s", key, error.stderr)
            return False

        except OSError as error:
            logger.debug("gsettings could not be started: %s", error)
            return False

        return True

    def apply_wallpaper(self, img_path) -> bool:
        if _is_blank(img_path):
            return False

        # gsettings expects a URI, a plain path is silently turned into "no image"
        uri = Path(img_path).expanduser().resolve().as_uri()

        if not self._gsettings_set("picture-uri", uri):
            return False

        # GNOME 42+ keeps a separate background for the dark style. Older schemas have
        # no such key, which is fine.
        if not self._gsettings_set("picture-uri-dark", uri):
            logger.debug("picture-uri-dark not updated, keeping light background only")

        return True


class MacOSWallpaperChanger(WallpaperChanger):
    name = "macOS"

    def can_run_on_this_system(self) -> bool:
        return sys.platform == "darwin"

    def apply_wallpaper(self, img_path) -> bool:
        if _is_blank(img_path):
            return False

        posix_path = str(Path(img_path).expanduser().resolve())
        posix_path = posix_path.replace("\\", "\\\\").replace('"', '\\"')
        script = f'tell application "Finder" to set desktop picture to POSIX file "{posix_path}"'

        try:
            subprocess.run(
                ["osascript", "-e", script],
                check=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )

        except subprocess.CalledProcessError as error:
            logger.debug("osascript failed: %s", error.stderr)
            return False

        except OSError as error:
            logger.debug("osascript could not be started: %s", error)
            return False

        return True


class WindowsWallpaperChanger(WallpaperChanger):
    name = "Windows"

    SPI_SETDESKWALLPAPER = 0x0014
    SPIF_UPDATEINIFILE = 0x01
    SPIF_SENDWININICHANGE = 0x02

    def can_run_on_this_system(self) -> bool:
        return sys.platform == "win32"

    def apply_wallpaper(self, img_path) -> bool:
        if _is_blank(img_path):
            return False

        try:
            import ctypes

            result = ctypes.windll.user32.SystemParametersInfoW(
                self.SPI_SETDESKWALLPAPER,
                0,
                str(Path(img_path).resolve()),
                self.SPIF_UPDATEINIFILE | self.SPIF_SENDWININICHANGE,
            )

        except (AttributeError, OSError) as error:
            logger.debug("SystemParametersInfoW unavailable: %s", error)
            return False

        return bool(result)


# priority order matters: the first changer that can run wins
WALLPAPER_CHANGERS = (
    GnomeWallpaperChanger(),
    MacOSWallpaperChanger(),
    WindowsWallpaperChanger(),
)


def can_run_on_this_system(changers=WALLPAPER_CHANGERS) -> bool:
    """True when at least one changer can set the wallpaper here."""

    return any(changer.can_run_on_this_system() for changer in changers)


def select_changer(changers=WALLPAPER_CHANGERS) -> WallpaperChanger:
    """
    Return the first changer, in priority order, that can run on this system. Raise
    WallpaperUpdateError if there is none.
    """

    for changer in changers:
        if changer.can_run_on_this_system():
            logger.debug("Selected %r", changer)
            return changer

    raise WallpaperUpdateError(
        f"Unsupported operating system ({sys.platform}): no way to change the wallpaper "
        "was found. Supported desktops are GNOME/Unity, macOS and Windows."
    )

