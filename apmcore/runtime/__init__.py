"""
Runtime Module

The application handle that owns connection state and harvests.
"""

from apmcore.runtime.application import AppRun, Application

__all__ = [
    "AppRun",
    "Application",
]
