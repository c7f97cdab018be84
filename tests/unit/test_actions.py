"""
Unit tests for linklens.analytics.actions.

Covers:
    - the hard cap of five and HIGH -> MEDIUM -> LOW ordering
    - a high-priority rule late in the table still wins a slot
    - hot-lead and contact action texts
    - rules whose generator declines (returns None) or raises are skipped
"""

import pytest

from linklens.analytics.actions import (
    ACTION_RULES,
    MAX_ACTIONS_TOTAL,
    ActionRule,
    generate_unified_actions,
)
from linklens.models import (
    CompanyInfo,
    ContactSummary,
    HotLeadInfo,
    InsightsSummary,
    Priority,
    Section,
    UnifiedAction,
)


def _ids(actions):
    return [a.id for a in actions]


def _medium_heavy_summary(**overrides) -> InsightsSummary:
    # Fires five MEDIUM dashboard rules and no HIGH ones
    data = dict(
        total_views=10,
        avg_engagement=10,
        peak_day="Tuesday",
        peak_hour="10:00",
        views_change=30,
        download_rate=50,
        hot_leads=[HotLeadInfo(name="anon", score=80, downloaded=True)],
        top_utm_campaign="spring",
        top_utm_campaign_views=6,
        top_utm_campaign_percent=60,
    )
    data.update(overrides)
    return InsightsSummary(**data)


def test_cap_is_five():
    assert MAX_ACTIONS_TOTAL == 5


def test_rule_ids_are_unique():
    ids = [rule.id for rule in ACTION_RULES]
    assert len(ids) == len(set(ids)) == 18


def test_nothing_fires_on_empty_summary():
    assert generate_unified_actions(InsightsSummary()) == []


def test_busy_dashboard_is_capped_high_first():
    summary = _medium_heavy_summary(
        hot_leads=[HotLeadInfo(name="Jane", email="jane@acme.com", company="Acme", score=92, downloaded=True)],
        hot_leads_count=3,
        active_companies=[CompanyInfo(name="Acme", domain="acme.com", viewer_count=3)],
    )
    out = generate_unified_actions(summary, Section.DASHBOARD)
    assert _ids(out) == [
        "contact-hot-lead",
        "contact-hot-leads-multiple",
        "follow-up-company",
        "share-optimal-time",
        "amplify-trending",
    ]
    assert out[2].title == "Follow up with Acme"
    assert out[2].reason == "3 team members viewing"


def test_late_high_priority_rule_is_not_crowded_out():
    late = ActionRule(
        "late-high", Priority.HIGH, (Section.DASHBOARD,),
        lambda s: True,
        lambda s: UnifiedAction(id="late-high", priority=Priority.HIGH, icon="!", title="Late", reason="last rule"),
    )
    out = generate_unified_actions(_medium_heavy_summary(), "dashboard", rules=ACTION_RULES + (late,))
    assert len(out) == 5
    assert out[0].id == "late-high"
    assert _ids(out)[1:] == ["share-optimal-time", "amplify-trending", "refresh-content", "follow-up-downloaders"]


def test_contact_hot_lead_text_and_buttons():
    lead = HotLeadInfo(name="Jane", email="jane@acme.com", company="Acme", score=92, file_name="deck.pdf")
    out = generate_unified_actions(InsightsSummary(hot_leads=[lead], hot_leads_count=1), "file-doc")
    action = out[0]
    assert action.id == "contact-hot-lead"
    assert action.title == "Contact Jane (Acme)"
    assert action.reason == "92% engagement on deck.pdf"
    assert [b.label for b in action.buttons] == ["Email", "LinkedIn"]


def test_contact_hot_lead_picks_first_lead_with_email():
    leads = [
        HotLeadInfo(name="anon", score=95),
        HotLeadInfo(name="Bob", email="bob@gmail.com", score=80),
    ]
    action = generate_unified_actions(InsightsSummary(hot_leads=leads, hot_leads_count=2))[0]
    assert action.title == "Contact Bob"
    assert action.reason == "80% engagement"


def test_lead_without_email_gets_no_contact_action():
    summary = InsightsSummary(hot_leads=[HotLeadInfo(name="anon", score=90)], hot_leads_count=1)
    assert "contact-hot-lead" not in _ids(generate_unified_actions(summary))


def test_generator_returning_none_is_skipped():
    declining = ActionRule("declines", Priority.HIGH, (Section.DASHBOARD,), lambda s: True, lambda s: None)
    assert generate_unified_actions(InsightsSummary(), rules=(declining,)) == []


def test_raising_rule_is_isolated():
    def explode(s):
        raise AttributeError("nope")

    broken = ActionRule("broken", Priority.HIGH, (Section.DASHBOARD,), explode, explode)
    summary = _medium_heavy_summary()
    assert generate_unified_actions(summary, rules=(broken,) + ACTION_RULES) == generate_unified_actions(summary)


def test_contact_now_reason():
    contact = ContactSummary(is_high_intent=True, last_visit_hours_ago=5, avg_engagement=81)
    out = generate_unified_actions(InsightsSummary(contact=contact), Section.CONTACTS)
    assert _ids(out) == ["contact-now"]
    assert out[0].reason == "81% engagement, 5h ago"


def test_contact_now_needs_recent_visit():
    contact = ContactSummary(is_high_intent=True, last_visit_hours_ago=72, avg_engagement=81)
    assert generate_unified_actions(InsightsSummary(contact=contact), Section.CONTACTS) == []


def test_contacts_medium_actions():
    contact = ContactSummary(
        peak_active_day="Monday",
        peak_active_hour="9:00",
        colleague_count=2,
        has_downloaded=True,
        avg_engagement=55,
    )
    out = generate_unified_actions(InsightsSummary(contact=contact), "contacts")
    assert _ids(out) == ["schedule-contact", "propose-team-demo", "send-followup-materials"]
    assert out[0].title == "Schedule for Monday 9:00"


def test_low_priority_qr_suggestion_only_for_files():
    summary = InsightsSummary(total_views=10, avg_engagement=80)
    assert _ids(generate_unified_actions(summary, Section.FILE_DOC)) == ["try-qr-offline"]
    assert generate_unified_actions(summary, Section.DASHBOARD) == []


def test_drop_off_action_skips_first_page():
    summary = InsightsSummary(total_views=10, avg_engagement=80, qr_scan_rate=10,
                              high_drop_off_page=1, high_drop_off_rate=60)
    assert generate_unified_actions(summary, Section.FILE_DOC) == []
    out = generate_unified_actions(summary.model_copy(update={"high_drop_off_page": 4}), Section.FILE_DOC)
    assert out[0].title == "Review page 4"
    assert out[0].reason == "60% drop-off"


def test_unknown_section_raises():
    with pytest.raises(ValueError):
        generate_unified_actions(InsightsSummary(), "sidebar")
