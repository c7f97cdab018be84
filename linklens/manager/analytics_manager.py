"""
AnalyticsManager module for LinkLens.

Responsibilities:
    - Validate raw log rows into AccessLog models at the boundary
    - Run the pipeline: logs -> summary -> insights / actions
    - Score viewers with the strategy that matches the link's content type
    - Assemble a one-call report for dashboards

Design notes:
    - Stateless: every call takes its full input; nothing is cached between calls.
    - The summary is built once per call and shared by both rule engines.
    - Section names are validated here so a bad value fails fast with ValueError.

LLM Prompt Example:
    "Explain how a thin manager class can orchestrate pure analytics functions
    while keeping validation at the edge and the core free of I/O."
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..analytics.actions import generate_unified_actions
from ..analytics.insights import MAX_INSIGHTS_TOTAL, generate_unified_insights
from ..analytics.return_rate import get_return_stats
from ..analytics.summary import calculate_insights_summary
from ..models import (
    AccessLog,
    AggregatedViewer,
    Insight,
    InsightsSummary,
    ReturnStats,
    Section,
    SummaryOptions,
    UnifiedAction,
    parse_logs,
)
from ..scoring.viewers import aggregate_viewers

log = logging.getLogger("linklens.manager")

LogRows = Sequence[Union[AccessLog, Dict[str, Any]]]


class AnalyticsManager:
    def __init__(self, max_insights: int = MAX_INSIGHTS_TOTAL):
        self.max_insights = max_insights

    # ----------------------------------------------------------------
    # Pipeline steps
    # ----------------------------------------------------------------
    def summarize(self, logs: LogRows, options: Optional[SummaryOptions] = None) -> InsightsSummary:
        return calculate_insights_summary(parse_logs(logs), options)

    def insights(
        self,
        logs: LogRows,
        section: Union[Section, str],
        options: Optional[SummaryOptions] = None,
        max_total: Optional[int] = None,
    ) -> List[Insight]:
        """
        Ranked insights for a section.

        Raises:
            ValueError: Unknown section.
            pydantic.ValidationError: Malformed log rows.
        """
        section = Section(section)
        parsed = parse_logs(logs)
        summary = calculate_insights_summary(parsed, options)
        return generate_unified_insights(parsed, summary, section, max_total or self.max_insights)

    def actions(
        self,
        logs: LogRows,
        section: Union[Section, str] = Section.DASHBOARD,
        options: Optional[SummaryOptions] = None,
    ) -> List[UnifiedAction]:
        section = Section(section)
        return generate_unified_actions(self.summarize(logs, options), section)

    def viewer_scores(
        self,
        logs: LogRows,
        is_external_url: bool = False,
        total_pages: Optional[int] = None,
    ) -> List[AggregatedViewer]:
        """One scored row per viewer identity, highest score first."""
        viewers = aggregate_viewers(parse_logs(logs), is_external_url=is_external_url, total_pages=total_pages)
        return sorted(viewers, key=lambda v: -v.engagement_score)

    def return_stats(self, logs: LogRows) -> ReturnStats:
        return get_return_stats(parse_logs(logs))

    # ----------------------------------------------------------------
    # One-call report
    # ----------------------------------------------------------------
    def report(
        self,
        logs: LogRows,
        section: Union[Section, str] = Section.DASHBOARD,
        options: Optional[SummaryOptions] = None,
        max_total: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Summary, insights, actions and viewer scores from a single pass over the logs.

        Returns:
            dict: `summary` (InsightsSummary), `insights` (List[Insight]),
                  `actions` (List[UnifiedAction]), `viewers` (List[AggregatedViewer]).
        """
        section = Section(section)
        options = options or SummaryOptions()
        parsed = parse_logs(logs)
        summary = calculate_insights_summary(parsed, options)
        insights = generate_unified_insights(parsed, summary, section, max_total or self.max_insights)
        actions = generate_unified_actions(summary, section)
        viewers = sorted(
            aggregate_viewers(parsed, is_external_url=options.is_external_url, total_pages=options.total_pages),
            key=lambda v: -v.engagement_score,
        )
        log.debug(
            "Report for %s: %d logs, %d insights, %d actions",
            section.value, len(parsed), len(insights), len(actions),
        )
        return {"summary": summary, "insights": insights, "actions": actions, "viewers": viewers}
