"""
Unified actions engine.

Recommends next steps ("Contact Jane (Acme)", "Review page 4", ...) from an
InsightsSummary. Actions are presentation-only: buttons carry a label and an
icon, and executing them is up to the caller.

Same rule-table pattern as the insights engine, with a hard cap of
MAX_ACTIONS_TOTAL (5) results. Every applicable rule is evaluated before the
priority sort, so a late high-priority rule can never be crowded out.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from linklens.analytics.base import BaseRuleEngine
from linklens.analytics.helpers import round_half_up
from linklens.models import ActionButton, ContactSummary, InsightsSummary, Priority, Section, UnifiedAction

__all__ = [
    "MAX_ACTIONS_VISIBLE",
    "MAX_ACTIONS_TOTAL",
    "ActionRule",
    "ACTION_RULES",
    "ActionEngine",
    "generate_unified_actions",
]

MAX_ACTIONS_VISIBLE = 5
MAX_ACTIONS_TOTAL = 5

S = Section
H, M, L = Priority.HIGH, Priority.MEDIUM, Priority.LOW

_NO_CONTACT = ContactSummary()


@dataclass(frozen=True)
class ActionRule:
    id: str
    priority: Priority
    applies_to: Tuple[Section, ...]
    condition: Callable[[InsightsSummary], bool]
    generate: Callable[[InsightsSummary], Optional[UnifiedAction]]


def _or(value, default):
    return default if value is None else value


def _c(s: InsightsSummary) -> ContactSummary:
    return s.contact or _NO_CONTACT


def _action(id: str, priority: Priority, icon: str, title: str, reason: str, *buttons: Tuple[str, str]) -> UnifiedAction:
    return UnifiedAction(
        id=id,
        priority=priority,
        icon=icon,
        title=title,
        reason=reason,
        buttons=[ActionButton(label=label, icon=b_icon) for label, b_icon in buttons],
    )


EMAIL = ("Email", "📧")
LINKEDIN = ("LinkedIn", "💼")
VIEW_LEADS = ("View Leads", "👥")
EDIT = ("Edit", "✏️")
DRAFT_EMAIL = ("Draft Email", "📧")


def _contact_hot_lead(s: InsightsSummary) -> Optional[UnifiedAction]:
    lead = next((lead for lead in s.hot_leads if lead.email), None)
    if lead is None:
        return None
    company = f" ({lead.company})" if lead.company else ""
    on_file = f" on {lead.file_name}" if lead.file_name else ""
    return _action("contact-hot-lead", H, "🔥", f"Contact {lead.name}{company}",
                   f"{lead.score}% engagement{on_file}", EMAIL, LINKEDIN)


def _follow_up_company(s: InsightsSummary) -> Optional[UnifiedAction]:
    if not s.active_companies:
        return None
    company = s.active_companies[0]
    return _action("follow-up-company", H, "🏢", f"Follow up with {company.name}",
                   f"{company.viewer_count} team members viewing", VIEW_LEADS)


ACTION_RULES: Tuple[ActionRule, ...] = (
    # ============ HIGH ============
    ActionRule(
        "contact-hot-lead", H,
        (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_IMAGE, S.FILE_URL, S.TRACK_SITE, S.ANALYTICS),
        lambda s: len(s.hot_leads) > 0 and any(lead.email for lead in s.hot_leads),
        _contact_hot_lead,
    ),
    ActionRule(
        "contact-hot-leads-multiple", H, (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.ANALYTICS),
        lambda s: s.hot_leads_count >= 3,
        lambda s: _action("contact-hot-leads-multiple", H, "🔥", f"Contact {s.hot_leads_count} hot leads",
                          "High intent viewers ready for follow-up", VIEW_LEADS, ("Export", "📤")),
    ),
    ActionRule(
        "follow-up-company", H,
        (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_URL, S.TRACK_SITE, S.ANALYTICS),
        lambda s: len(s.active_companies) > 0,
        _follow_up_company,
    ),
    ActionRule(
        "fix-drop-off", H, (S.FILE_DOC,),
        lambda s: _or(s.high_drop_off_rate, 0) > 25 and _or(s.high_drop_off_page, 0) > 1,
        lambda s: _action("fix-drop-off", H, "⚠️", f"Review page {s.high_drop_off_page}",
                          f"{s.high_drop_off_rate}% drop-off", ("View Page", "👁️")),
    ),
    ActionRule(
        "improve-hook", H, (S.FILE_MEDIA,),
        lambda s: _or(s.early_drop_rate, 0) > 30,
        lambda s: _action("improve-hook", H, "⚠️", "Improve opening 20%",
                          f"High early drop-off rate ({round_half_up(_or(s.early_drop_rate, 0))}%)", EDIT),
    ),
    ActionRule(
        "contact-now", H, (S.CONTACTS,),
        lambda s: _c(s).is_high_intent is True and _c(s).last_visit_hours_ago < 48,
        lambda s: _action("contact-now", H, "🔥", "Contact now",
                          f"{_c(s).avg_engagement or 0}% engagement, {_c(s).last_visit_hours_ago or 0}h ago",
                          EMAIL, LINKEDIN),
    ),

    # ============ MEDIUM ============
    ActionRule(
        "share-optimal-time", M,
        (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_IMAGE, S.FILE_URL, S.TRACK_SITE, S.ANALYTICS),
        lambda s: bool(s.peak_day and s.peak_hour),
        lambda s: _action("share-optimal-time", M, "⏰", f"Share on {s.peak_day} at {s.peak_hour}",
                          "Peak engagement time", ("Copy Link", "📋"), ("QR Code", "📱")),
    ),
    ActionRule(
        "amplify-trending", M, (S.DASHBOARD, S.ANALYTICS),
        lambda s: _or(s.views_change, 0) > 20,
        lambda s: _action("amplify-trending", M, "📈", "Amplify trending content",
                          f"Views up {s.views_change}%", ("Share", "📤"), ("View", "👁️")),
    ),
    ActionRule(
        "refresh-content", M, (S.DASHBOARD, S.FILE_DOC, S.FILE_MEDIA, S.FILE_IMAGE, S.ANALYTICS),
        lambda s: s.avg_engagement < 40 and s.total_views >= 5,
        lambda s: _action("refresh-content", M, "📉", "Refresh content", "Below average engagement", EDIT),
    ),
    ActionRule(
        "follow-up-downloaders", M, (S.DASHBOARD, S.FILE_DOC, S.FILE_IMAGE, S.FILE_OTHER, S.ANALYTICS),
        lambda s: s.download_rate > 30 and any(lead.downloaded for lead in s.hot_leads),
        lambda s: _action("follow-up-downloaders", M, "⬇️", "Follow up with downloaders",
                          "They saved your content", VIEW_LEADS),
    ),
    ActionRule(
        "amplify-campaign", M, (S.FILE_URL, S.TRACK_SITE, S.DASHBOARD, S.ANALYTICS),
        lambda s: _or(s.top_utm_campaign_views, 0) >= 5,
        lambda s: _action("amplify-campaign", M, "🎯", f'Amplify "{s.top_utm_campaign}"',
                          f"Driving {s.top_utm_campaign_percent}% of traffic", ("Copy UTM Link", "📋")),
    ),
    ActionRule(
        "update-link-destination", M, (S.FILE_URL, S.TRACK_SITE),
        lambda s: s.is_external_url is True and s.avg_engagement < 40 and s.total_views >= 5,
        lambda s: _action("update-link-destination", M, "📉", "Update link destination",
                          "Below average engagement", ("Edit URL", "✏️")),
    ),
    ActionRule(
        "shorten-content", M, (S.FILE_MEDIA,),
        lambda s: _or(s.watch_completion, 100) < 50 and s.total_views >= 3,
        lambda s: _action("shorten-content", M, "📉", "Shorten content", "Low completion rate", EDIT),
    ),
    ActionRule(
        "try-different-image", M, (S.FILE_IMAGE,),
        lambda s: s.avg_engagement < 40 and s.total_views >= 5,
        lambda s: _action("try-different-image", M, "📉", "Try different image",
                          "Below average engagement", ("Replace", "🔄")),
    ),
    ActionRule(
        "schedule-contact", M, (S.CONTACTS,),
        lambda s: bool(_c(s).peak_active_day and _c(s).peak_active_hour),
        lambda s: _action("schedule-contact", M, "⏰",
                          f"Schedule for {_c(s).peak_active_day} {_c(s).peak_active_hour}",
                          "Their active time", ("Schedule", "📅")),
    ),
    ActionRule(
        "propose-team-demo", M, (S.CONTACTS,),
        lambda s: _or(_c(s).colleague_count, 0) >= 2,
        lambda s: _action("propose-team-demo", M, "👥", "Propose team demo",
                          f"{_c(s).colleague_count} colleagues viewing", DRAFT_EMAIL),
    ),
    ActionRule(
        "send-followup-materials", M, (S.CONTACTS,),
        lambda s: _c(s).has_downloaded is True and _c(s).avg_engagement >= 50,
        lambda s: _action("send-followup-materials", M, "⬇️", "Send follow-up materials",
                          "Downloaded and engaged - ready for more", DRAFT_EMAIL),
    ),

    # ============ LOW ============
    ActionRule(
        "try-qr-offline", L, (S.FILE_DOC, S.FILE_MEDIA, S.FILE_IMAGE, S.FILE_OTHER),
        lambda s: s.qr_scan_rate < 5 and s.total_views >= 10,
        lambda s: _action("try-qr-offline", L, "📱", "Try QR for offline sharing",
                          "Expand reach beyond digital", ("Generate QR", "📱")),
    ),
)


class ActionEngine(BaseRuleEngine[UnifiedAction]):
    kind = "Action rule"

    def __init__(self, rules: Optional[Sequence[ActionRule]] = None):
        super().__init__(ACTION_RULES if rules is None else rules, MAX_ACTIONS_TOTAL)

    def materialize(self, rule: ActionRule, summary: InsightsSummary) -> Optional[UnifiedAction]:
        if not rule.condition(summary):
            return None
        return rule.generate(summary)


def generate_unified_actions(
    summary: InsightsSummary,
    section: Union[Section, str] = Section.DASHBOARD,
    rules: Optional[Sequence[ActionRule]] = None,
) -> List[UnifiedAction]:
    """
    Up to five recommended actions for one section, HIGH first.

    Raises:
        ValueError: If `section` is not a known section name.
    """
    return ActionEngine(rules=rules).run(section, summary)
