"""
bingwallpaper console utilities

This module provides application-wide access to a Rich Console object for
handling writing to stdout and stderr. Diagnostic logging for the whole
'bingwallpaper' logger hierarchy is rendered on the stderr console as well, so
cycle reports and log records never interleave on different streams.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

bingwallpaper_theme = Theme(
    {"warning": "orange_red1", "fail": "bold red", "confirm": "", "describe": ""}
)

console = Console(theme=bingwallpaper_theme)
error_console = Console(theme=bingwallpaper_theme, stderr=True)

logger = logging.getLogger("bingwallpaper")


"""
Formatting helpers
"""


def warn(msg: str):
    """
    Format msg and print to stderr.
    """

    error_console.print(
        f":exclamation_mark-emoji: [bold]warning: [/] {msg}", style="warning"
    )


def describe(msg: str, **kwargs):
    """
    Format descriptive msg and print to stdout.
    """

    console.print(f"{msg}", style="describe", **kwargs)


def confirm_success(msg: str, **kwargs):
    """
    Format confirmation msg and print to stdout. Accept any additional kwargs that console.print from
    rich module exposes.
    """

    console.print(f"{msg}", style="confirm", **kwargs)


def fail(msg: str):
    """
    Format failure msg and print to stderr.
    """

    error_console.print(f":x-emoji: failed. {msg}", style="fail")


def quiet():
    """Silence everything printed to stdout. Warnings and errors still reach stderr."""

    console.quiet = True


def configure_logging(verbose: bool = False) -> logging.Logger:
    """
    Attach a RichHandler to the package logger. Calling this more than once replaces
    the previous handler instead of stacking duplicates.
    """

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=error_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False

    return logger
