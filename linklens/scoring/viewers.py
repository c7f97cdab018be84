"""
Viewer aggregation: fold every visit of one identity into a scored AggregatedViewer.

Responsibilities:
    - Accumulate duration, completion, deepest page and download across visits
    - Score the result with the strategy selected for the link
    - Provide the list used by viewer tables and lead counts

LLM Prompt Example:
    "Aggregate a viewer's repeated visits into one record and score it with a
    pluggable strategy picked by content type."
"""

from typing import List, Optional, Sequence

from linklens.analytics.helpers import group_by_viewer, to_utc, viewer_key
from linklens.models import AccessLog, AggregatedViewer
from linklens.scoring.strategies import (
    BaseScoringStrategy,
    ViewerSignals,
    classify_intent,
    get_scoring_strategy,
)

__all__ = [
    "viewer_signals",
    "latest_log",
    "calculate_aggregated_viewer_score",
    "aggregate_viewer",
    "aggregate_viewers",
]


def viewer_signals(viewer_logs: Sequence[AccessLog], total_pages: Optional[int] = None) -> ViewerSignals:
    total_duration = 0.0
    max_completion = 0.0
    max_page = 0
    downloaded = False
    for log in viewer_logs:
        total_duration += log.total_duration_seconds or 0
        max_completion = max(max_completion, log.completion_percentage or 0)
        max_page = max(max_page, log.max_page_reached or 0)
        downloaded = downloaded or bool(log.downloaded)
    return ViewerSignals(
        total_clicks=len(viewer_logs),
        total_duration_seconds=total_duration,
        max_completion_percentage=max_completion,
        max_page_reached=max_page,
        downloaded=downloaded,
        total_pages=total_pages,
    )


def latest_log(viewer_logs: Sequence[AccessLog]) -> AccessLog:
    # max() keeps the first of equal timestamps
    return max(viewer_logs, key=lambda log: to_utc(log.accessed_at))


def calculate_aggregated_viewer_score(
    viewer_logs: Sequence[AccessLog],
    is_external_url: bool = False,
    total_pages: Optional[int] = None,
    strategy: Optional[BaseScoringStrategy] = None,
) -> int:
    """
    Engagement score of one viewer across all of their visits.

    Args:
        viewer_logs: Logs that share one `viewer_key`.
        is_external_url: Use the track-site formula instead of the file one.
        total_pages: Page count of the document, for the depth component.
        strategy: Explicit strategy; overrides `is_external_url`.

    Returns:
        int: Score in [0, 100]; 0 for no visits.
    """
    if not viewer_logs:
        return 0
    strategy = strategy or get_scoring_strategy(is_external_url)
    return strategy.score(viewer_signals(viewer_logs, total_pages))


def aggregate_viewer(
    viewer_logs: Sequence[AccessLog],
    is_external_url: bool = False,
    total_pages: Optional[int] = None,
    strategy: Optional[BaseScoringStrategy] = None,
) -> AggregatedViewer:
    signals = viewer_signals(viewer_logs, total_pages)
    strategy = strategy or get_scoring_strategy(is_external_url)
    score = strategy.score(signals)
    last = latest_log(viewer_logs)
    return AggregatedViewer(
        identity=viewer_key(viewer_logs[0]),
        viewer_email=last.viewer_email,
        viewer_name=last.viewer_name,
        total_clicks=signals.total_clicks,
        is_return_visitor=signals.is_return_visitor,
        total_duration_seconds=signals.total_duration_seconds,
        max_completion_percentage=signals.max_completion_percentage,
        max_page_reached=signals.max_page_reached,
        downloaded=signals.downloaded,
        engagement_score=score,
        intent=classify_intent(score),
        last_accessed_at=last.accessed_at,
        file_id=last.file_id,
        file_name=last.file_name,
    )


def aggregate_viewers(
    logs: Sequence[AccessLog],
    is_external_url: bool = False,
    total_pages: Optional[int] = None,
) -> List[AggregatedViewer]:
    """One AggregatedViewer per identity, in first-seen order."""
    strategy = get_scoring_strategy(is_external_url)
    return [
        aggregate_viewer(visits, total_pages=total_pages, strategy=strategy)
        for visits in group_by_viewer(logs or []).values()
    ]
