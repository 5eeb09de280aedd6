"""
bingwallpaper Configuration Management

This file handles loading the settings file and turning it into the immutable
Configuration value handed to the scheduler. Raise a SettingsError for any issues
that arise in processing or retrieving these configuration variables.

The settings file is "settings.properties" and is saved at
~/.config/bingwallpaper/settings.properties unless the BINGWALLPAPER_CONFIG_DIR
environment variable points somewhere else. It is a flat key=value file:

    dimensionWidth=auto
    dimensionHeight=auto
    targetFileName=auto
    proxyType=none
    proxyHost=none
    proxyPort=none

The literal "auto" means the value is resolved at startup (screen size, default
target file) and "none" disables the proxy.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.properties"
DEFAULT_TARGET_FILE_NAME = "bing-wallpaper.jpg"
FALLBACK_DIMENSIONS = (1920, 1080)

AUTO = "auto"
NONE = "none"

DEFAULT_SETTINGS = {
    "dimensionWidth": AUTO,
    "dimensionHeight": AUTO,
    "targetFileName": AUTO,
    "proxyType": NONE,
    "proxyHost": NONE,
    "proxyPort": NONE,
}


class SettingsError(Exception):
    """Raise when an issue occurs with handling bingwallpaper settings."""

    pass


class ProxyType(Enum):
    DIRECT = "direct"
    HTTP = "http"
    SOCKS = "socks"


@dataclass(frozen=True)
class ProxySpec:
    """Proxy to route every HTTP request through."""

    kind: ProxyType
    host: str
    port: int

    def as_requests_proxies(self) -> Optional[dict]:
        """
        Build the 'proxies' mapping understood by requests. SOCKS goes through
        socks5h so that host names are resolved on the proxy side as well.
        """

        if self.kind is ProxyType.DIRECT:
            return None

        scheme = "socks5h" if self.kind is ProxyType.SOCKS else "http"
        address = f"{scheme}://{self.host}:{self.port}"

        return {"http": address, "https": address}


@dataclass(frozen=True)
class Configuration:
    """
    Settings resolved once at startup. Width and height are always concrete
    positive integers by the time a Configuration exists.
    """

    width: int
    height: int
    target_path: Path
    proxy: Optional[ProxySpec] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise SettingsError(
                f"Wallpaper dimensions must be positive, got {self.width}x{self.height}."
            )

        if not Path(self.target_path).is_absolute():
            raise SettingsError(f"Target path {self.target_path} is not absolute.")


def get_config_dir() -> Path:
    """
    Return the settings directory from environment variable BINGWALLPAPER_CONFIG_DIR or
    alternatively ~/.config/bingwallpaper.
    """

    try:
        return Path(os.environ["BINGWALLPAPER_CONFIG_DIR"]).expanduser().resolve()

    except KeyError:
        return Path("~/.config/bingwallpaper").expanduser().resolve()


def parse_properties(text: str) -> dict:
    """
    Parse key=value lines. Comment lines start with '#' or '!', blank lines are skipped
    and only the first '=' separates key from value.
    """

    properties = {}

    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(("#", "!")):
            continue

        key, separator, value = line.partition("=")
        if not separator:
            raise SettingsError(f"Line {number} is not a key=value pair: {raw_line!r}")

        properties[key.strip()] = value.strip()

    return properties


def generate_settings_file(config_dir: Path = None) -> Path:
    """
    Write a settings file holding only default values. Returns the path of the written file.

    Warning: will overwrite any existing settings file.
    """

    config_dir = config_dir or get_config_dir()

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        dest_file = config_dir / SETTINGS_FILE_NAME
        with open(dest_file, "w", encoding="utf-8") as file:
            file.write("# bingwallpaper settings\n")
            for key, value in DEFAULT_SETTINGS.items():
                file.write(f"{key}={value}\n")

    except OSError as error:
        raise SettingsError(
            f"There was an error saving the settings file: {error}."
        )

    return dest_file


def detect_screen_dimensions() -> tuple:
    """
    Ask the windowing system for the size of the primary display. Falls back to
    1920x1080 when no display is reachable (headless session, missing Tk).
    """

    try:
        import tkinter as tk

        root = tk.Tk()
        root.withdraw()
        width = root.winfo_screenwidth()
        height = root.winfo_screenheight()
        root.destroy()
        return width, height

    except Exception as error:
        logger.warning(
            "Failed to detect screen resolution: %s. Using default %dx%d",
            error,
            *FALLBACK_DIMENSIONS,
        )
        return FALLBACK_DIMENSIONS


def _parse_positive_int(key: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise SettingsError(f"'{key}' must be an integer or '{AUTO}', got {value!r}.")

    if number <= 0:
        raise SettingsError(f"'{key}' must be positive, got {number}.")

    return number


def _resolve_dimensions(settings: dict) -> tuple:
    width = settings["dimensionWidth"]
    height = settings["dimensionHeight"]

    # both or neither: a half "auto" pair is resolved entirely from the display
    if width.lower() == AUTO or height.lower() == AUTO:
        return detect_screen_dimensions()

    return (
        _parse_positive_int("dimensionWidth", width),
        _parse_positive_int("dimensionHeight", height),
    )


def _resolve_target_path(settings: dict, config_dir: Path) -> Path:
    target = settings["targetFileName"]

    if target.lower() == AUTO or not target:
        target_path = config_dir / DEFAULT_TARGET_FILE_NAME
    else:
        target_path = Path(target).expanduser().resolve()

    if target_path.is_dir():
        raise SettingsError(f"Target file {target_path} is a directory.")

    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise SettingsError(f"Cannot create directory for {target_path}: {error}")

    return target_path


def _resolve_proxy(settings: dict) -> Optional[ProxySpec]:
    kind = settings["proxyType"].lower()
    host = settings["proxyHost"]
    port = settings["proxyPort"]

    if NONE in (kind, host.lower(), port.lower()) or not kind:
        return None

    try:
        proxy_type = ProxyType(kind)
    except ValueError:
        raise SettingsError(
            f"Unknown proxyType {kind!r}, expected one of: none, "
            + ", ".join(member.value for member in ProxyType)
        )

    if not host:
        raise SettingsError("'proxyHost' cannot be empty when a proxy is configured.")

    try:
        port_number = int(port)
    except ValueError:
        raise SettingsError(f"'proxyPort' must be an integer, got {port!r}.")

    if not 1 <= port_number <= 65535:
        raise SettingsError(f"'proxyPort' must be within 1..65535, got {port_number}.")

    return ProxySpec(kind=proxy_type, host=host, port=port_number)


def build_configuration(settings: dict, config_dir: Path = None) -> Configuration:
    """Resolve raw settings (missing keys take their default) into a Configuration."""

    config_dir = config_dir or get_config_dir()
    merged = {**DEFAULT_SETTINGS, **settings}

    width, height = _resolve_dimensions(merged)

    return Configuration(
        width=width,
        height=height,
        target_path=_resolve_target_path(merged, config_dir),
        proxy=_resolve_proxy(merged),
    )


def load_config(config_dir: Path = None) -> Configuration:
    """
    Load settings.properties from the settings directory and build the Configuration. A
    missing settings file is generated with default values first.
    """

    config_dir = config_dir or get_config_dir()
    config_src = config_dir / SETTINGS_FILE_NAME

    if not config_src.exists():
        logger.info("No settings file at %s, writing defaults", config_src)
        config_src = generate_settings_file(config_dir)

    try:
        text = config_src.read_text(encoding="utf-8")

    except OSError as error:
        raise SettingsError(f"There was an issue opening the settings: {error}")

    return build_configuration(parse_properties(text), config_dir)
