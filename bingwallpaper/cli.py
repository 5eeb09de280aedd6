"""
bingwallpaper

Keep your desktop background in sync with the Bing image of the day.

This module defines the entry point to the bingwallpaper CLI. Startup goes through the
following steps, and any failure before the scheduler starts ends the process with exit
status 1 without touching the network:

    1) make sure one of the wallpaper changers can run on this system
    2) take the single instance guard
    3) load settings.properties (generated with defaults on first run)
    4) run the scheduler, recurring every hour or once with --single
"""

import sys
import signal

import click

from bingwallpaper import __version__
from bingwallpaper import wallpaper_handler
from bingwallpaper.config import load_config, get_config_dir, SETTINGS_FILE_NAME
from bingwallpaper.instance_guard import SingleInstanceGuard
from bingwallpaper.scheduler import Scheduler, SchedulerMode
from bingwallpaper.sync import SyncCycle

from bingwallpaper.cli_utils.console import (
    configure_logging,
    confirm_success,
    describe,
    fail,
    quiet,
)
from bingwallpaper.cli_utils.decorators import catch_errors


def _install_stop_handlers(scheduler: Scheduler) -> dict:
    """Route SIGINT/SIGTERM to scheduler.stop(). Returns the handlers that were replaced."""

    def _stop(signum, frame):
        describe(f"received {signal.Signals(signum).name}, stopping after this step...")
        scheduler.stop()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _stop)

    return previous


def _restore_handlers(previous: dict):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


@click.command(name="bingwallpaper")
@click.option(
    "--single",
    "-s",
    is_flag=True,
    default=False,
    help="Update the wallpaper once and exit instead of checking every hour.",
)
@click.option(
    "--verbose",
    "verbosity",
    flag_value="verbose",
    help="Print debug logging to the terminal.",
)
@click.option(
    "--quiet",
    "verbosity",
    flag_value="quiet",
    help="Silence all output printed to stdout. Warnings and errors still go to stderr.",
)
@click.version_option(version=__version__, prog_name="bingwallpaper")
@catch_errors
def cli(single: bool, verbosity: str):
    """
    Bing Wallpaper

    Download the Bing image of the day and set it as your desktop background. Runs
    in the background and checks for a new image every hour.

    Settings are read from settings.properties in ~/.config/bingwallpaper (or in
    $BINGWALLPAPER_CONFIG_DIR). Use --single to update once and exit, e.g. from cron:

        $ bingwallpaper --single
    """

    configure_logging(verbose=verbosity == "verbose")

    if verbosity == "quiet":
        quiet()

    describe(f":desktop_computer-emoji:  Bing Wallpaper {__version__}")

    if not wallpaper_handler.can_run_on_this_system():
        fail(
            f"this operating system is not supported ({sys.platform}). "
            "Supported desktops are GNOME/Unity, macOS and Windows."
        )
        sys.exit(1)

    changer = wallpaper_handler.select_changer()

    guard = SingleInstanceGuard()
    if not guard.acquire():
        fail("another instance of bingwallpaper is already running.")
        sys.exit(1)

    try:
        config = load_config()
        proxy = config.proxy
        via = f" via {proxy.kind.value} proxy {proxy.host}:{proxy.port}" if proxy else ""
        describe(
            f"using {get_config_dir() / SETTINGS_FILE_NAME}: "
            f"{config.width}x{config.height} -> {config.target_path} on {changer.name}{via}"
        )

        scheduler = Scheduler(SyncCycle(config, changer))

        if single:
            outcome = scheduler.start(SchedulerMode.SINGLE)
            describe(f"done ({outcome.value})")
            return

        previous = _install_stop_handlers(scheduler)
        try:
            scheduler.start(SchedulerMode.RECURRING)
        finally:
            _restore_handlers(previous)

        confirm_success("stopped.")

    finally:
        guard.release()


def main():
    cli()


if __name__ == "__main__":
    main()
