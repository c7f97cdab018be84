"""
Unified insights engine.

Turns a precomputed InsightsSummary into short, ranked observations for one UI
section ("3 hot leads ready for follow-up", "42% drop-off at page 4", ...).

Priority system:
    - HIGH: needs attention now
    - MEDIUM: worth optimizing
    - LOW: nice to know

Display order is HIGH -> MEDIUM -> LOW, table order within a tier.
At most MAX_INSIGHTS_TOTAL are returned; UIs show MAX_INSIGHTS_VISIBLE up front.

LLM Prompt Example:
    "Express a few dozen analytics observations as a declarative table of
    (condition, text, implication) rules filtered by UI section, instead of a
    long if/else chain."
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from linklens.analytics.base import BaseRuleEngine
from linklens.analytics.helpers import round_half_up
from linklens.config import settings
from linklens.models import (
    AccessLog,
    ContactSummary,
    Insight,
    InsightCategory,
    InsightsSummary,
    Priority,
    Section,
)

__all__ = [
    "MAX_INSIGHTS_VISIBLE",
    "MAX_INSIGHTS_TOTAL",
    "InsightRule",
    "INSIGHT_RULES",
    "NO_VIEWS_INSIGHT",
    "InsightEngine",
    "generate_unified_insights",
]

MAX_INSIGHTS_VISIBLE = settings.MAX_INSIGHTS_VISIBLE
MAX_INSIGHTS_TOTAL = settings.MAX_INSIGHTS_TOTAL

SummaryFn = Callable[[InsightsSummary, Sequence[AccessLog]], object]

S = Section
H, M, L = Priority.HIGH, Priority.MEDIUM, Priority.LOW

# Section groups used by the table below
VIEWED = (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_IMAGE, S.FILE_URL, S.TRACK_SITE, S.ANALYTICS)
CORE = (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_URL, S.TRACK_SITE, S.ANALYTICS)
URLS = (S.FILE_URL, S.TRACK_SITE)
DOCS = (S.FILE_DOC,)
MEDIA = (S.FILE_MEDIA,)
CONTACTS = (S.CONTACTS,)

_NO_CONTACT = ContactSummary()


@dataclass(frozen=True)
class InsightRule:
    id: str
    icon: str
    priority: Priority
    category: InsightCategory
    applies_to: Tuple[Section, ...]
    condition: SummaryFn
    text: SummaryFn
    implication: SummaryFn


def _or(value, default):
    """`default` only when `value` is missing; 0 and "" are kept."""
    return default if value is None else value


def _c(s: InsightsSummary) -> ContactSummary:
    return s.contact or _NO_CONTACT


def _plural(n) -> str:
    return "s" if (n or 0) > 1 else ""


def _companies_text(s: InsightsSummary) -> str:
    companies = s.companies_with_multiple_viewers or []
    if len(companies) == 1:
        return f"Multiple viewers from {companies[0]}"
    return f"{len(companies)} companies showing strong interest"


def _utm_percent(s: InsightsSummary) -> int:
    return s.top_utm_campaign_percent or round_half_up((s.top_utm_campaign_views or 0) / max(s.total_views, 1) * 100)


def _rule(id, icon, priority, category, applies_to, condition, text, implication) -> InsightRule:
    return InsightRule(
        id=id,
        icon=icon,
        priority=priority,
        category=InsightCategory(category),
        applies_to=applies_to,
        condition=condition,
        text=text,
        implication=implication if callable(implication) else (lambda s, logs, _v=implication: _v),
    )


INSIGHT_RULES: Tuple[InsightRule, ...] = (
    # ========== HIGH ==========
    _rule("hot-leads-ready", "🔥", H, "engagement", VIEWED,
          lambda s, logs: s.hot_leads_count > 0,
          lambda s, logs: f"{s.hot_leads_count} hot lead{_plural(s.hot_leads_count)} ready for follow-up",
          "High intent - prioritize outreach"),
    _rule("low-engagement-warning", "📉", H, "engagement", CORE,
          lambda s, logs: s.avg_engagement < 20 and s.total_views >= 5,
          lambda s, logs: f"Low engagement score ({round_half_up(s.avg_engagement)})",
          "Consider refreshing content"),
    _rule("tracksite-high-engagement", "🎯", H, "engagement", URLS,
          lambda s, logs: s.avg_engagement >= 70 and s.total_views >= 3,
          lambda s, logs: f"High engagement score ({round_half_up(s.avg_engagement)})",
          "Link resonating with audience"),
    _rule("tracksite-growing-interest", "📈", M, "engagement", URLS,
          lambda s, logs: s.return_rate >= 30 and s.total_views >= 5,
          lambda s, logs: f"{round_half_up(s.return_rate)}% return click rate",
          "Strong recurring interest"),
    _rule("views-declining", "📉", H, "trend", CORE,
          lambda s, logs: _or(s.views_change, 0) < -20,
          lambda s, logs: f"Views down {abs(_or(s.views_change, 0))}% vs previous period",
          "Consider refreshing content or distribution"),
    _rule("company-interest", "🏢", H, "audience", CORE,
          lambda s, logs: len(s.companies_with_multiple_viewers or []) > 0,
          lambda s, logs: _companies_text(s),
          "Being shared internally - potential deal"),
    # Exit on the first or last page is expected; those never count as drop-off
    _rule("high-drop-off-page", "⚠️", H, "content", DOCS,
          lambda s, logs: _or(s.high_drop_off_rate, 0) > 25 and _or(s.high_drop_off_page, 0) > 1,
          lambda s, logs: f"{s.high_drop_off_rate}% drop-off at page {s.high_drop_off_page}",
          "Content may need revision"),
    _rule("low-completion-rate", "📊", H, "content", DOCS,
          lambda s, logs: _or(s.avg_completion, 100) < 50 and s.total_views >= 3,
          lambda s, logs: f"Only {round_half_up(_or(s.avg_completion, 0))}% average completion",
          "Most viewers don't finish - consider shortening"),
    _rule("low-watch-completion", "📉", H, "content", MEDIA,
          lambda s, logs: _or(s.watch_completion, 100) < 50 and s.total_views >= 3,
          lambda s, logs: f"Only {round_half_up(_or(s.watch_completion, 0))}% average watch completion",
          "Most viewers don't finish watching"),
    _rule("early-drop-media", "⚠️", H, "content", MEDIA,
          lambda s, logs: _or(s.early_drop_rate, 0) > 30,
          lambda s, logs: f"{s.early_drop_rate}% dropped before 20% completion",
          "Opening content needs improvement"),
    _rule("contact-high-intent", "🔥", H, "behavior", CONTACTS,
          lambda s, logs: _c(s).is_high_intent is True,
          lambda s, logs: "Very high intent signals",
          "Priority follow-up"),
    _rule("contact-quick-return", "⚡", H, "behavior", CONTACTS,
          lambda s, logs: _c(s).last_visit_hours_ago < 24 and _c(s).return_visit_count >= 1,
          lambda s, logs: "Returned within 24 hours",
          "Urgent interest"),

    # ========== MEDIUM ==========
    _rule("high-engagement", "🚀", M, "engagement", VIEWED,
          lambda s, logs: s.avg_engagement >= 70 and s.total_views >= 3,
          lambda s, logs: f"High engagement score ({round_half_up(s.avg_engagement)}%)",
          "Content is resonating well"),
    _rule("strong-return-visitors", "🔄", M, "engagement", VIEWED + (S.FILE_OTHER,),
          lambda s, logs: s.return_rate > 25,
          lambda s, logs: f"{round_half_up(s.return_rate)}% are return visitors",
          "Content resonating - people come back"),
    _rule("high-download-interest", "⬇️", M, "engagement",
          (S.DASHBOARD, S.FILE_DOC, S.FILE_IMAGE, S.FILE_OTHER, S.ANALYTICS),
          lambda s, logs: s.download_rate > 30,
          lambda s, logs: f"{round_half_up(s.download_rate)}% downloaded",
          "High interest - saving for later"),
    _rule("engagement-improving", "💪", M, "trend", (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.ANALYTICS),
          lambda s, logs: _or(s.engagement_change, 0) > 10,
          lambda s, logs: f"Engagement up {s.engagement_change}% vs previous period",
          "Content optimization is working"),
    _rule("media-finished-count", "🏁", M, "content", MEDIA,
          lambda s, logs: _or(s.finished_count, 0) > 0 and s.total_views >= 3,
          lambda s, logs: f"{s.finished_count} viewer{_plural(s.finished_count)} finished entirely",
          "Content holding attention"),
    _rule("high-watch-completion", "🎬", M, "content", MEDIA,
          lambda s, logs: _or(s.watch_completion, 0) > 70 and s.total_views >= 3,
          lambda s, logs: f"{round_half_up(_or(s.watch_completion, 0))}% average watch completion",
          "Strong retention"),
    _rule("geographic-concentration", "🌍", M, "audience", CORE,
          lambda s, logs: _or(s.top_country_percent, 0) > 50,
          lambda s, logs: f"{s.top_country_percent}% of views from {s.top_country}",
          "Strong regional interest"),
    _rule("social-traffic-strong", "📣", M, "traffic", CORE,
          lambda s, logs: _or(s.social_traffic_percent, 0) > 30,
          lambda s, logs: f"{s.social_traffic_percent}% traffic from social",
          "Social sharing is working"),
    _rule("search-traffic-strong", "🔍", M, "traffic", CORE,
          lambda s, logs: _or(s.search_traffic_percent, 0) > 30,
          lambda s, logs: f"{s.search_traffic_percent}% traffic from search",
          "People are actively looking for this"),
    _rule("utm-campaign-success", "🎯", M, "traffic", CORE,
          lambda s, logs: _or(s.top_utm_campaign_views, 0) >= 5,
          lambda s, logs: f'"{s.top_utm_campaign}" driving {_utm_percent(s)}% of traffic',
          "Campaign working"),
    _rule("peak-time-identified", "⏰", M, "timing", VIEWED,
          lambda s, logs: bool(s.peak_day and s.peak_hour),
          lambda s, logs: f"Peak viewing: {s.peak_day} at {s.peak_hour}",
          "Best time to share"),
    # Page 1 always collects the most time; only later pages are interesting
    _rule("most-engaging-page", "💎", M, "content", DOCS,
          lambda s, logs: (_or(s.most_engaging_page, 0) > 1
                           and _or(s.most_engaging_page_time, 0) > _or(s.avg_page_time, 0) * 2),
          lambda s, logs: f"Page {s.most_engaging_page} gets 2x more attention",
          "Strong interest in this content"),
    _rule("high-completion-rate", "✅", M, "content", DOCS,
          lambda s, logs: _or(s.avg_completion, 0) > 80 and s.total_views >= 3,
          lambda s, logs: f"{round_half_up(_or(s.avg_completion, 0))}% completion rate",
          "Viewers engaged through the end"),
    _rule("tracking-external-site", "🔗", M, "traffic", URLS,
          lambda s, logs: s.is_external_url is True and s.total_views > 0,
          lambda s, logs: "Tracking clicks to external site",
          "Landing engagement tracked"),
    _rule("url-strong-engagement", "🔥", M, "engagement", URLS,
          lambda s, logs: s.is_external_url is True and s.avg_engagement >= 60,
          lambda s, logs: "Strong click engagement",
          "Link is effective"),
    _rule("contact-multiple-files", "📁", M, "behavior", CONTACTS,
          lambda s, logs: _c(s).files_viewed >= 3,
          lambda s, logs: f"Viewed {_c(s).files_viewed} different files",
          "Broad interest"),
    _rule("contact-colleagues-viewing", "👥", M, "audience", CONTACTS,
          lambda s, logs: _or(_c(s).colleague_count, 0) >= 1,
          lambda s, logs: f"{_c(s).colleague_count} colleague{_plural(_c(s).colleague_count)} also viewed",
          lambda s, logs: f"Shared internally at {_c(s).company_name or 'company'}"),
    _rule("contact-peak-time", "⏰", M, "timing", CONTACTS,
          lambda s, logs: bool(_c(s).peak_active_day and _c(s).peak_active_hour),
          lambda s, logs: f"Most active {_c(s).peak_active_day} at {_c(s).peak_active_hour}",
          "Optimal contact time"),
    _rule("contact-specific-focus", "🎯", M, "behavior", CONTACTS,
          lambda s, logs: bool(_c(s).most_viewed_file) and _c(s).files_viewed >= 2,
          lambda s, logs: f'Focused mainly on "{_c(s).most_viewed_file}"',
          "Primary interest area"),
    _rule("contact-downloaded", "⬇️", M, "behavior", CONTACTS,
          lambda s, logs: _c(s).has_downloaded is True,
          lambda s, logs: "Downloaded content",
          "Ready for more"),
    _rule("views-trending-up", "📈", M, "trend", CORE,
          lambda s, logs: _or(s.views_change, 0) > 20,
          lambda s, logs: f"Views up {s.views_change}% vs previous period",
          "Momentum building - amplify"),

    # ========== LOW ==========
    _rule("international-reach", "🌐", L, "audience", CORE,
          lambda s, logs: _or(s.countries_count, 0) >= 3,
          lambda s, logs: f"Viewers from {s.countries_count} countries",
          "International reach expanding"),
    _rule("mobile-dominant", "📱", L, "audience", CORE,
          lambda s, logs: _or(s.mobile_percent, 0) > 40,
          lambda s, logs: f"{s.mobile_percent}% viewing on mobile",
          "Mobile audience"),
    _rule("desktop-dominant", "💻", L, "audience", CORE,
          lambda s, logs: _or(s.desktop_percent, 0) > 80,
          lambda s, logs: f"{s.desktop_percent}% viewing on desktop",
          "Professional audience"),
    _rule("qr-effective", "📲", L, "traffic", VIEWED,
          lambda s, logs: s.qr_scan_rate > 20,
          lambda s, logs: f"{round_half_up(s.qr_scan_rate)}% from QR codes",
          "Physical distribution working"),
    _rule("image-view-time", "⏰", L, "engagement", (S.FILE_IMAGE,),
          lambda s, logs: s.total_views >= 3,
          lambda s, logs: "Average view time tracked",
          "Holding attention"),
)

NO_VIEWS_INSIGHT = Insight(
    id="no-views",
    icon="📊",
    text="No views yet",
    implication="Share your link to start collecting analytics",
    priority=Priority.MEDIUM,
    category=InsightCategory.ENGAGEMENT,
)


class InsightEngine(BaseRuleEngine[Insight]):
    """Evaluates INSIGHT_RULES (or an injected table) against one summary."""

    kind = "Insight rule"

    def __init__(self, rules: Optional[Sequence[InsightRule]] = None, max_total: int = MAX_INSIGHTS_TOTAL):
        super().__init__(INSIGHT_RULES if rules is None else rules, max_total)

    def materialize(self, rule: InsightRule, summary: InsightsSummary, logs: Sequence[AccessLog]) -> Optional[Insight]:
        if not rule.condition(summary, logs):
            return None
        return Insight(
            id=rule.id,
            icon=rule.icon,
            text=rule.text(summary, logs),
            implication=rule.implication(summary, logs),
            priority=rule.priority,
            category=rule.category,
        )


def generate_unified_insights(
    logs: Sequence[AccessLog],
    summary: InsightsSummary,
    section: Union[Section, str],
    max_total: int = MAX_INSIGHTS_TOTAL,
    rules: Optional[Sequence[InsightRule]] = None,
) -> List[Insight]:
    """
    Ranked insights for one section.

    Args:
        logs: Access logs the summary was built from.
        summary: Output of `calculate_insights_summary` for the same logs.
        section: Requesting UI section; rules for other sections are skipped.
        max_total: Cap on returned insights (default 8).
        rules: Replacement rule table (defaults to INSIGHT_RULES).

    Returns:
        List[Insight]: HIGH before MEDIUM before LOW, table order within a tier.
        With no logs, exactly one "no-views" insight whatever the section.

    Raises:
        ValueError: If `section` is not a known section name.
    """
    if not logs:
        return [NO_VIEWS_INSIGHT.model_copy()]
    return InsightEngine(rules=rules, max_total=max_total).run(section, summary, logs)
