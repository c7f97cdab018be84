"""
Link-level (volume-gated) performance scores.

One score for a whole link, aggregated across every viewer. Low-volume links
stay low regardless of how engaged their few viewers were:

    effective = sum(min(visits, VIEWER_VOLUME_CAP) for each viewer)
    volume    = min(100, 20 * log10(effective + 1))     # 1 -> 6, 10 -> 21, 100 -> 40
    gate      = min(1, effective / FULL_VOLUME_VIEWS)    # quality bonuses scale in with volume

File links:
    quality = time(avg s / 120, capped) * .35 + avg completion * .35 + min(100, download rate * 2) * .30
    final   = round(volume * .25 + quality * gate * .75)

Track-site links:
    final = round(volume + gate * (reach * .20 + return * .20 + recency * .10 + velocity * .10))

Both clamp to [0, 100] and return 0 for no logs. Capping each viewer's
contribution keeps one enthusiastic visitor from carrying a small link.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from linklens.analytics.helpers import group_by_viewer, log_duration, percent, round_half_up, to_utc
from linklens.config import settings
from linklens.models import AccessLog

__all__ = [
    "effective_volume",
    "volume_score",
    "volume_multiplier",
    "recency_score",
    "velocity_score",
    "calculate_file_link_score_from_logs",
    "calculate_track_site_link_score_from_logs",
    "calculate_link_score",
]

# (max days since last click, score)
_RECENCY_STEPS = ((1, 100), (3, 90), (7, 70), (14, 50), (30, 30), (60, 15))

# (min this-week / last-week ratio, score)
_VELOCITY_STEPS = ((2.0, 100), (1.5, 80), (1.0, 50), (0.5, 20))


def effective_volume(logs: Sequence[AccessLog], cap: Optional[int] = None) -> int:
    cap = cap or settings.VIEWER_VOLUME_CAP
    return sum(min(len(visits), cap) for visits in group_by_viewer(logs).values())


def volume_score(effective: float) -> float:
    return min(100.0, 20 * math.log10(effective + 1))


def volume_multiplier(effective: float, full_volume: Optional[int] = None) -> float:
    full_volume = full_volume or settings.FULL_VOLUME_VIEWS
    return min(1.0, effective / full_volume)


def recency_score(days_since_last: int) -> int:
    for max_days, score in _RECENCY_STEPS:
        if days_since_last <= max_days:
            return score
    return 5


def velocity_score(clicks_this_week: int, clicks_last_week: int) -> int:
    # A link with no history has no velocity yet
    if clicks_last_week == 0:
        return 0
    ratio = clicks_this_week / clicks_last_week
    for min_ratio, score in _VELOCITY_STEPS:
        if ratio >= min_ratio:
            return score
    return 5


def _clamp_score(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def calculate_file_link_score_from_logs(logs: Sequence[AccessLog]) -> int:
    """
    Performance score of an uploaded file across all of its views.

    Args:
        logs: Every access log of the file.

    Returns:
        int: Score in [0, 100].
    """
    if not logs:
        return 0

    total_views = len(logs)
    effective = effective_volume(logs)

    total_time = 0.0
    total_completion = 0.0
    downloads = 0
    for log in logs:
        total_time += log_duration(log)
        total_completion += log.completion_percentage or 0
        if log.downloaded or (log.download_count or 0) > 0:
            downloads += 1

    # 120s average counts as full time score; a 50% download rate as full download score
    time_part = min(100.0, total_time / total_views / 120 * 100)
    completion_part = max(0.0, min(100.0, total_completion / total_views))
    download_part = min(100.0, percent(downloads, total_views) * 2)
    quality = time_part * 0.35 + completion_part * 0.35 + download_part * 0.30

    return _clamp_score(volume_score(effective) * 0.25 + quality * volume_multiplier(effective) * 0.75)


def calculate_track_site_link_score_from_logs(
    logs: Sequence[AccessLog],
    now: Optional[datetime] = None,
) -> int:
    """
    Engagement score of a tracked external URL across all of its clicks.

    Args:
        logs: Every click log of the link.
        now: Reference time for recency and velocity (defaults to current UTC time).

    Returns:
        int: Score in [0, 100].
    """
    if not logs:
        return 0

    now = to_utc(now or datetime.now(timezone.utc))
    total_clicks = len(logs)
    groups = group_by_viewer(logs)
    unique = len(groups) or 1
    returning = sum(1 for visits in groups.values() if len(visits) > 1)

    effective = sum(min(len(visits), settings.VIEWER_VOLUME_CAP) for visits in groups.values())
    gate = volume_multiplier(effective)

    reach = min(100.0, percent(unique, total_clicks))
    return_ratio = percent(returning, unique)

    times = [to_utc(log.accessed_at) for log in logs]
    days_since_last = max(0, (now - max(times)).days)

    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    this_week = sum(1 for t in times if t >= one_week_ago)
    last_week = sum(1 for t in times if two_weeks_ago <= t < one_week_ago)

    bonus = (
        reach * 0.20
        + return_ratio * 0.20
        + recency_score(days_since_last) * 0.10
        + velocity_score(this_week, last_week) * 0.10
    )
    return _clamp_score(volume_score(effective) + bonus * gate)


def calculate_link_score(
    logs: Sequence[AccessLog],
    is_external_url: bool = False,
    now: Optional[datetime] = None,
) -> int:
    if is_external_url:
        return calculate_track_site_link_score_from_logs(logs, now=now)
    return calculate_file_link_score_from_logs(logs)
