"""
Unit tests for linklens.analytics.helpers.

Covers:
    - viewer identity precedence and first-seen grouping order
    - half-up rounding and guarded percentages
    - duration fallback to per-page times
    - presentation helpers (durations, relative times, flags, icons, badges)
    - email/referrer parsing and section discrimination
"""

from datetime import datetime, timedelta, timezone

import pytest

from linklens.analytics.helpers import (
    detect_access_method,
    format_duration,
    format_relative_time,
    get_country_flag,
    get_device_icon,
    get_file_type_icon,
    get_intent_badge,
    get_intent_signal,
    group_by_viewer,
    is_consumer_domain,
    is_hot_lead,
    log_duration,
    parse_company_from_email,
    parse_referrer_source,
    percent,
    round_half_up,
    section_for_file,
    to_utc,
    viewer_key,
)
from linklens.models import Section


def test_viewer_key_precedence(make_log):
    assert viewer_key(make_log(viewer_email="a@x.com", ip_address="1.1.1.1", session_id="s")) == "a@x.com"
    assert viewer_key(make_log(ip_address="1.1.1.1", session_id="s")) == "1.1.1.1"
    assert viewer_key(make_log(session_id="s")) == "s"
    assert viewer_key(make_log(id="42")) == "42"


def test_viewer_key_empty_strings_fall_through(make_log):
    assert viewer_key(make_log(viewer_email="", ip_address="", session_id="sess-1")) == "sess-1"


def test_group_by_viewer_preserves_first_seen_order(make_log):
    logs = [
        make_log(viewer_email="b@x.com"),
        make_log(viewer_email="a@x.com"),
        make_log(viewer_email="b@x.com"),
    ]
    groups = group_by_viewer(logs)
    assert list(groups) == ["b@x.com", "a@x.com"]
    assert len(groups["b@x.com"]) == 2


@pytest.mark.parametrize("value,expected", [(2.5, 3), (0.5, 1), (1.49, 1), (13.2, 13), (-0.5, 0), (99.5, 100)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_percent_guards_empty_denominator():
    assert percent(3, 0) == 0
    assert percent(1, 4) == 25


def test_log_duration_prefers_total_then_page_times(make_log):
    assert log_duration(make_log(total_duration_seconds=42)) == 42
    assert log_duration(make_log(pages_time_data={1: 10.4, 2: 20.3})) == 31
    assert log_duration(make_log(total_duration_seconds=0, pages_time_data={"1": 5})) == 5
    assert log_duration(make_log()) == 0
    assert log_duration(make_log(pages_time_data={1: 12, 2: None})) == 12


def test_to_utc_treats_naive_as_utc():
    naive = datetime(2025, 1, 1, 12, 0)
    assert to_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("seconds,expected", [(45, "45s"), (120, "2m"), (125, "2m 5s"), (0, "0s")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_relative_time():
    now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
    assert format_relative_time(now - timedelta(seconds=30), now) == "Just now"
    assert format_relative_time(now - timedelta(minutes=5), now) == "5m ago"
    assert format_relative_time(now - timedelta(hours=3), now) == "3h ago"
    assert format_relative_time(now - timedelta(days=2), now) == "2d ago"
    assert format_relative_time(now - timedelta(days=10), now) == "2025-02-28"


def test_country_flag_and_fallback():
    assert get_country_flag("Germany") == "🇩🇪"
    assert get_country_flag("USA") == "🇺🇸"
    assert get_country_flag("Atlantis") == "🌍"
    assert get_country_flag(None) == "🌍"


def test_device_and_file_icons():
    assert get_device_icon("mobile") == "📱"
    assert get_device_icon("tablet") == "📱"
    assert get_device_icon(None) == "💻"
    assert get_file_type_icon("application/pdf") == "📕"
    assert get_file_type_icon("video/mp4") == "🎬"
    assert get_file_type_icon(None, "url") == "🔗"
    assert get_file_type_icon(None) == "📄"


def test_intent_signal_and_badge():
    assert get_intent_signal(70) == "hot"
    assert get_intent_signal(69) == "warm"
    assert get_intent_signal(40) == "warm"
    assert get_intent_signal(39) == "cold"
    assert get_intent_badge(75)["label"] == "Hot"
    assert get_intent_badge(10, "warm")["label"] == "Warm"
    assert get_intent_badge(10)["bg_color"] == "bg-slate-100"


def test_is_hot_lead_rules():
    assert is_hot_lead(80, False, 0)
    assert is_hot_lead(70, True, 0)
    assert not is_hot_lead(70, False, 0)
    assert is_hot_lead(60, False, 2)
    assert not is_hot_lead(59, True, 5)


def test_company_parsing_skips_consumer_domains():
    assert parse_company_from_email("jane@acme.io") == "Acme"
    assert parse_company_from_email("jane@GMAIL.com") is None
    assert parse_company_from_email("not-an-email") is None
    assert is_consumer_domain("proton.me")
    assert not is_consumer_domain("acme.io")


@pytest.mark.parametrize("referrer,expected", [
    (None, "direct"),
    ("https://www.google.com/search?q=deck", "google"),
    ("https://www.linkedin.com/feed/", "linkedin"),
    ("https://app.slack.com/client/T1", "slack"),
    ("https://mail.example.com/inbox", "email"),
    ("https://example.org/blog", "other"),
])
def test_parse_referrer_source(referrer, expected):
    assert parse_referrer_source(referrer) == expected


def test_detect_access_method():
    assert detect_access_method(utm_medium="qr") == "qr_scan"
    assert detect_access_method(user_agent="Acme QR Scanner/2.0") == "qr_scan"
    assert detect_access_method(referrer="https://google.com", user_agent="Mozilla/5.0") == "direct_click"


@pytest.mark.parametrize("mime,link_type,expected", [
    ("application/pdf", None, Section.FILE_DOC),
    ("video/mp4", None, Section.FILE_MEDIA),
    ("image/png", None, Section.FILE_IMAGE),
    ("application/zip", None, Section.FILE_OTHER),
    (None, "url", Section.FILE_URL),
])
def test_section_for_file(mime, link_type, expected):
    assert section_for_file(mime, link_type) is expected
