"""
Unit tests for linklens.analytics.summary.

Covers:
    - empty input and option pass-through
    - the hot / cold lead split and hot-lead details
    - rates, geography, devices, traffic, UTM and peak time
    - page analysis gating on total_pages
    - media metrics and previous-period trends
    - calculate_analytics_summary and build_contact_summary
"""

from datetime import datetime, timedelta, timezone

import pytest

from linklens.analytics.summary import (
    build_contact_summary,
    calculate_analytics_summary,
    calculate_insights_summary,
    peak_day_and_hour,
)
from linklens.models import ContactSummary, SummaryOptions

BASE_TIME = datetime(2025, 3, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def scenario_logs(make_log):
    """One hot returning viewer at Acme plus two single-visit cold viewers."""
    jane = [
        make_log(viewer_email="jane@acme.com", total_duration_seconds=175, completion_percentage=100,
                 downloaded=(i == 0), file_name="deck.pdf", file_id="f-1")
        for i in range(4)
    ]
    return jane + [make_log(viewer_email="bob@gmail.com"), make_log(viewer_email="carl@globex.com")]


def test_empty_logs_give_zeroed_summary():
    summary = calculate_insights_summary([])
    assert summary.total_views == 0
    assert summary.unique_viewers == 0
    assert summary.hot_leads == []
    assert summary.peak_day is None


def test_empty_logs_still_pass_options_through():
    contact = ContactSummary(files_viewed=2)
    summary = calculate_insights_summary([], SummaryOptions(is_external_url=True, contact_data=contact,
                                                            destination_url="https://example.com"))
    assert summary.is_external_url is True
    assert summary.contact.files_viewed == 2
    assert summary.destination_url == "https://example.com"


def test_hot_viewer_scenario(scenario_logs):
    summary = calculate_insights_summary(scenario_logs)
    assert summary.total_views == 6
    assert summary.unique_viewers == 3
    assert (summary.hot_leads_count, summary.warm_leads_count, summary.cold_leads_count) == (1, 0, 2)
    assert summary.return_rate == 33
    # effective volume 5 keeps the link score low despite one perfect viewer
    assert summary.avg_engagement == 4

    lead = summary.hot_leads[0]
    assert lead.name == "jane"
    assert lead.company == "Acme"
    assert lead.score == 100
    assert lead.visit_count == 4
    assert lead.is_return is True
    assert lead.downloaded is True
    assert lead.file_name == "deck.pdf"


def test_hot_viewer_without_email_is_counted_but_not_listed(make_log):
    logs = [make_log(ip_address="9.9.9.9", total_duration_seconds=175, completion_percentage=100, downloaded=True)
            for _ in range(4)]
    summary = calculate_insights_summary(logs)
    assert summary.hot_leads_count == 1
    assert summary.hot_leads == []


def test_active_companies_skip_consumer_domains(make_log):
    logs = [
        make_log(viewer_email="a@acme.com"),
        make_log(viewer_email="b@acme.com"),
        make_log(viewer_email="a@acme.com"),
        make_log(viewer_email="c@gmail.com"),
        make_log(viewer_email="d@gmail.com"),
        make_log(viewer_email="e@globex.com"),
    ]
    summary = calculate_insights_summary(logs)
    assert summary.companies_with_multiple_viewers == ["Acme"]
    company = summary.active_companies[0]
    assert company.domain == "acme.com"
    assert company.viewer_count == 2
    assert company.emails == ["a@acme.com", "b@acme.com"]


def test_rates_and_distributions(make_log):
    logs = [
        make_log(country="US", device_type="desktop", traffic_source="social", utm_campaign="spring",
                 downloaded=True, access_method="qr_scan"),
        make_log(country="US", device_type="mobile", traffic_source="search", utm_campaign="spring"),
        make_log(country="DE", device_type="tablet", traffic_source="search"),
        make_log(device_type="desktop", is_qr_scan=True),
    ]
    summary = calculate_insights_summary(logs)
    assert summary.download_rate == 25
    assert summary.qr_scan_rate == 50
    assert summary.top_country == "US"
    assert summary.top_country_percent == 50
    assert summary.countries_count == 2
    assert summary.desktop_percent == 50
    assert summary.mobile_percent == 50
    assert summary.social_traffic_percent == 25
    assert summary.search_traffic_percent == 50
    assert summary.top_utm_campaign == "spring"
    assert summary.top_utm_campaign_views == 2
    assert summary.top_utm_campaign_percent == 50


def test_peak_day_and_hour_ties_go_to_earlier_index(make_log):
    sunday = datetime(2025, 3, 9, 8, 0, tzinfo=timezone.utc)
    logs = [make_log(), make_log(accessed_at=sunday)]
    assert peak_day_and_hour(logs) == ("Sunday", "8:00")
    assert peak_day_and_hour([]) == (None, None)


def test_page_analysis_needs_multiple_pages(make_log):
    logs = [make_log(exit_page=2, pages_time_data={1: 30, 2: 5, 3: 100}) for _ in range(2)]
    assert calculate_insights_summary(logs).avg_page_time is None
    assert calculate_insights_summary(logs, SummaryOptions(total_pages=1)).avg_page_time is None

    summary = calculate_insights_summary(logs, SummaryOptions(total_pages=3))
    assert summary.high_drop_off_page == 2
    assert summary.high_drop_off_rate == 100
    assert summary.avg_page_time == 45
    assert summary.most_engaging_page == 3
    assert summary.most_engaging_page_time == 100


def test_media_metrics(make_log):
    logs = [make_log(video_completion_percent=pct, watch_time_seconds=10) for pct in (100, 96, 10, 50)]
    summary = calculate_insights_summary(logs)
    assert summary.finished_count == 2
    assert summary.watch_completion == 64
    assert summary.early_drop_rate == 25
    assert summary.avg_watch_time == 10


def test_documents_have_no_watch_metrics(make_log):
    summary = calculate_insights_summary([make_log(completion_percentage=40)])
    assert summary.watch_completion is None
    assert summary.early_drop_rate is None
    assert summary.avg_completion == 40


def test_trends_need_a_positive_baseline(scenario_logs):
    summary = calculate_insights_summary(scenario_logs, SummaryOptions(previous_period_views=4,
                                                                       previous_period_engagement=8))
    assert summary.views_change == 50
    assert summary.engagement_change == -50
    flat = calculate_insights_summary(scenario_logs, SummaryOptions(previous_period_views=0))
    assert flat.views_change is None
    assert flat.engagement_change is None


def test_external_url_scores_clicks(make_log):
    summary = calculate_insights_summary([make_log(ip_address="1.1.1.1")], SummaryOptions(is_external_url=True))
    assert summary.is_external_url is True
    assert summary.cold_leads_count == 1


def test_analytics_summary(make_log):
    earlier = BASE_TIME - timedelta(days=3)
    logs = [
        make_log(viewer_email="a@x.com", access_method="qr_scan", completion_percentage=95,
                 total_duration_seconds=30, downloaded=True),
        make_log(viewer_email="a@x.com", total_duration_seconds=60),
        make_log(viewer_email="b@x.com", accessed_at=earlier),
    ]
    stats = calculate_analytics_summary(logs, now=BASE_TIME + timedelta(hours=1))
    assert stats.total_views == 3
    assert stats.unique_viewers == 2
    assert stats.qr_scans == 1
    assert stats.direct_clicks == 2
    assert stats.completion_rate == 33
    assert stats.avg_time_spent == 30
    assert stats.return_rate == 50
    assert stats.return_visits == 1
    assert stats.download_count == 1
    assert stats.views_today == 2
    assert stats.last_view_at == BASE_TIME
    assert stats.hot_leads + stats.warm_leads + stats.cold_leads == 2


def test_analytics_summary_empty():
    stats = calculate_analytics_summary([])
    assert stats.total_views == 0
    assert stats.last_view_at is None


def test_contact_summary(make_log):
    logs = [
        make_log(viewer_email="jane@acme.com", file_id="f-1", file_name="deck.pdf",
                 total_duration_seconds=100, downloaded=True),
        make_log(viewer_email="jane@acme.com", file_id="f-1", file_name="deck.pdf",
                 total_duration_seconds=50, accessed_at=BASE_TIME + timedelta(hours=2)),
        make_log(viewer_email="jane@acme.com", file_id="f-2", file_name="pricing.pdf",
                 pages_time_data={1: 10, 2: 20.4}, accessed_at=BASE_TIME + timedelta(days=1)),
    ]
    now = BASE_TIME + timedelta(days=1, hours=5)
    contact = build_contact_summary(
        logs,
        colleague_emails=["JANE@acme.com", "bob@acme.com", "", "carl@acme.com"],
        avg_engagement=65,
        now=now,
    )
    assert contact.total_visits == 3
    assert contact.files_viewed == 2
    assert contact.total_time_spent == 180
    assert contact.return_visit_count == 2
    assert contact.has_downloaded is True
    assert contact.is_high_intent is True
    assert contact.last_visit_hours_ago == 5
    assert contact.peak_active_day == "Tuesday"
    assert contact.most_viewed_file == "deck.pdf"
    assert contact.colleague_count == 2
    assert contact.company_name == "Acme"

    lukewarm = build_contact_summary(logs[:1], avg_engagement=50, now=now)
    assert lukewarm.is_high_intent is False
    assert lukewarm.return_visit_count == 0


def test_contact_summary_defaults(make_log):
    assert build_contact_summary([]).last_visit_hours_ago == 999
    derived = build_contact_summary([make_log(viewer_email="a@x.com", total_duration_seconds=30)], now=BASE_TIME)
    assert 0 <= derived.avg_engagement <= 100
    assert derived.last_visit_hours_ago == 0
