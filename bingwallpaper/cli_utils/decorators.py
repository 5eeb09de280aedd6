"""
bingwallpaper Decorators

Decorators shared by the command line entry points.
"""

import sys
from functools import wraps

import click

from bingwallpaper.cli_utils.console import fail


def catch_errors(func):
    """
    Catch and format errors with the "fail" console template and gracefully
    exit the application with an error code. click's own exceptions (usage errors,
    exits) pass through so click can handle them.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.ClickException, click.exceptions.Exit, click.exceptions.Abort):
            raise
        except Exception as error:
            fail(str(error))
            sys.exit(1)

    return wrapper
