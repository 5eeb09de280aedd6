"""
bingwallpaper - keep the desktop background in sync with the Bing image of the day.
"""

__version__ = "1.0.0"
