"""
Return-visitor statistics.

A viewer is "returning" when their identity (see `viewer_key`) appears more
than once in the given log set. All three functions group through the same
helper, so the rate shown next to the unique-viewer count always agrees.
"""

from typing import Sequence

from linklens.analytics.helpers import group_by_viewer, percent, round_half_up
from linklens.models import AccessLog, ReturnStats

__all__ = ["calculate_return_rate", "calculate_unique_viewers", "get_return_stats"]


def get_return_stats(logs: Sequence[AccessLog]) -> ReturnStats:
    """
    Return rate plus the components it was computed from.

    Args:
        logs: Access logs for one link, file or account.

    Returns:
        ReturnStats: `return_rate` (0-100, half-up rounded), `unique_viewers`,
        `return_viewers` and `total_views`. Empty input yields all zeros.
    """
    groups = group_by_viewer(logs or [])
    unique = len(groups)
    returning = sum(1 for visits in groups.values() if len(visits) > 1)
    return ReturnStats(
        return_rate=round_half_up(percent(returning, unique)),
        unique_viewers=unique,
        return_viewers=returning,
        total_views=len(logs or []),
    )


def calculate_return_rate(logs: Sequence[AccessLog]) -> int:
    return get_return_stats(logs).return_rate


def calculate_unique_viewers(logs: Sequence[AccessLog]) -> int:
    return len(group_by_viewer(logs or []))
