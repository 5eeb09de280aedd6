"""
__main__.py

This file adds support for running bingwallpaper as a python module instead of invoking the
"bingwallpaper" command line entrypoint:

    $ python -m bingwallpaper --single

"""

from bingwallpaper.cli import main


if __name__ == "__main__":
    main()
