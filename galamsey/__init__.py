"""
GalamseyWatch - crowd-sourced reporting of illegal mining activity.
"""

__version__ = "0.4.0"
