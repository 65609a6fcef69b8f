"""
Core module for the Checkbook authorization core.

Exports the main configuration component. Database and logging helpers are
imported from their own modules.
"""

from checkbook.core.config import settings

__all__ = [
    "settings",
]
