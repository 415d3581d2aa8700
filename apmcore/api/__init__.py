"""
API Module

HTTP framework integrations.
"""

from apmcore.api.middleware import InstrumentationMiddleware

__all__ = ["InstrumentationMiddleware"]
