"""
linklens package initializer.
"""

from . import analytics
from . import manager
from . import scoring

__all__ = ["analytics", "manager", "scoring"]
