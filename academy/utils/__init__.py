"""
Utility functions
"""

from academy.utils.timezone import utc_now

__all__ = [
    "utc_now",
]
