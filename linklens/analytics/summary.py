"""
Insights summary builder.

`calculate_insights_summary` folds a link's access logs into the single flat
InsightsSummary both rule engines read. It never re-derives identities or
scores on its own: grouping goes through `group_by_viewer`, per-viewer scores
through the scoring strategies, link scores through the volume-gated
functions, and the return rate through `calculate_return_rate`.

Also provided:
    - calculate_analytics_summary: quick-stats block above a link's analytics
    - build_contact_summary: per-contact signals for the contacts section

LLM Prompt Example:
    "Build one flat metrics object from raw access logs (lead tiers, rates,
    geo/device/traffic shares, peak time, page drop-off) so a rule table can
    read it without touching the logs again."
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from linklens.analytics.breakdowns import day_index
from linklens.analytics.helpers import (
    DAY_NAMES,
    email_domain,
    group_by_viewer,
    is_consumer_domain,
    is_hot_lead,
    log_duration,
    parse_company_from_email,
    percent,
    round_half_up,
    to_utc,
    viewer_key,
)
from linklens.analytics.return_rate import calculate_return_rate, get_return_stats
from linklens.models import (
    AccessLog,
    AnalyticsSummary,
    CompanyInfo,
    ContactSummary,
    HotLeadInfo,
    InsightsSummary,
    SummaryOptions,
)
from linklens.scoring.link_score import calculate_link_score
from linklens.scoring.strategies import get_scoring_strategy
from linklens.scoring.viewers import aggregate_viewer, calculate_aggregated_viewer_score, latest_log

__all__ = [
    "calculate_insights_summary",
    "calculate_analytics_summary",
    "build_contact_summary",
    "peak_day_and_hour",
]


def _round_pct(part: float, whole: float) -> int:
    return round_half_up(percent(part, whole))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def _company_name(domain: str) -> str:
    label = domain.split(".")[0]
    return label[:1].upper() + label[1:]


def peak_day_and_hour(logs: Sequence[AccessLog]) -> Tuple[Optional[str], Optional[str]]:
    """Busiest weekday (Sunday-first names) and hour ("H:00"); ties go to the earlier index."""
    if not logs:
        return None, None
    day_counts = [0] * 7
    hour_counts = [0] * 24
    for log in logs:
        day_counts[day_index(log)] += 1
        hour_counts[log.accessed_at.hour] += 1
    return DAY_NAMES[day_counts.index(max(day_counts))], f"{hour_counts.index(max(hour_counts))}:00"


def _active_companies(logs: Iterable[AccessLog]) -> List[CompanyInfo]:
    by_domain: Dict[str, Dict[str, None]] = {}
    for log in logs:
        domain = email_domain(log.viewer_email)
        if domain and not is_consumer_domain(domain):
            by_domain.setdefault(domain, {})[log.viewer_email] = None
    return [
        CompanyInfo(name=_company_name(domain), domain=domain, viewer_count=len(emails), emails=list(emails))
        for domain, emails in by_domain.items()
        if len(emails) >= 2
    ]


def _page_analysis(logs: Sequence[AccessLog], total_pages: int) -> Dict[str, object]:
    """Drop-off and most-engaging page, skipping the pages where those are trivially true."""
    total_views = len(logs)
    exits: Counter = Counter(log.exit_page for log in logs if log.exit_page)
    page_times: Dict[int, List[float]] = {}
    for log in logs:
        for page, seconds in (log.pages_time_data or {}).items():
            page_times.setdefault(page, []).append(seconds or 0)

    out: Dict[str, object] = {}

    # Everyone leaves from the last page; leaving from page 1 is a bounce
    candidates = [
        (page, _round_pct(count, total_views))
        for page, count in exits.items()
        if 1 < page < total_pages
    ]
    if candidates:
        page, rate = max(candidates, key=lambda c: c[1])
        if rate > 25:
            out["high_drop_off_page"] = page
            out["high_drop_off_rate"] = rate

    averages = {page: _mean(times) for page, times in page_times.items()}
    avg_page_time = _mean(list(averages.values())) if averages else 0
    out["avg_page_time"] = avg_page_time

    # Page 1 always collects the cover-reading time
    later = [(page, avg) for page, avg in averages.items() if page != 1]
    if later:
        page, avg = max(later, key=lambda p: p[1])
        if avg > avg_page_time * 2:
            out["most_engaging_page"] = page
            out["most_engaging_page_time"] = avg
    return out


def _media_metrics(logs: Sequence[AccessLog]) -> Dict[str, object]:
    media = [
        log for log in logs
        if log.video_completion_percent is not None or log.video_duration_seconds is not None
    ]
    completions = [log.video_completion_percent or log.completion_percentage or 0 for log in media]
    out: Dict[str, object] = {
        "finished_count": sum(1 for c in completions if c >= 95),
    }
    if media:
        out["watch_completion"] = min(100, _mean(completions))
        out["avg_watch_time"] = _mean([log.watch_time_seconds or log.total_duration_seconds or 0 for log in media])
        # Percentage based so 15-second clips are judged like 15-minute ones
        out["early_drop_rate"] = _round_pct(sum(1 for c in completions if c < 20), len(media))
    return out


def calculate_insights_summary(
    logs: Sequence[AccessLog],
    options: Optional[SummaryOptions] = None,
) -> InsightsSummary:
    """
    Precompute every metric the insight and action rules read.

    Args:
        logs: Access logs of one link, file, contact or account.
        options: Page count, previous-period baselines, content type and
            pass-through contact data (see SummaryOptions).

    Returns:
        InsightsSummary: Zeroed when `logs` is empty.
    """
    options = options or SummaryOptions()
    if not logs:
        return InsightsSummary(
            is_external_url=options.is_external_url,
            destination_url=options.destination_url,
            contact=options.contact_data,
        )

    total_views = len(logs)
    groups = group_by_viewer(logs)
    strategy = get_scoring_strategy(options.is_external_url)
    avg_engagement = calculate_link_score(logs, is_external_url=options.is_external_url, now=options.now)

    hot = warm = cold = 0
    hot_leads: List[HotLeadInfo] = []
    for visits in groups.values():
        viewer = aggregate_viewer(visits, total_pages=options.total_pages, strategy=strategy)
        if viewer.intent == "hot":
            hot += 1
            last = latest_log(visits)
            if last.viewer_email:
                hot_leads.append(HotLeadInfo(
                    name=last.viewer_name or last.viewer_email.split("@")[0],
                    email=last.viewer_email,
                    company=parse_company_from_email(last.viewer_email),
                    score=viewer.engagement_score,
                    file_name=last.file_name,
                    file_id=last.file_id,
                    is_return=viewer.is_return_visitor,
                    downloaded=viewer.downloaded,
                    visit_count=viewer.total_clicks,
                ))
        elif viewer.intent == "warm":
            warm += 1
        else:
            cold += 1

    active_companies = _active_companies(logs)

    completions = [log.completion_percentage for log in logs if log.completion_percentage is not None]

    countries = Counter(log.country for log in logs if log.country).most_common()
    campaigns = Counter(log.utm_campaign for log in logs if log.utm_campaign).most_common(1)

    devices = Counter(log.device_type for log in logs)
    traffic = Counter(log.traffic_source for log in logs)
    peak_day, peak_hour = peak_day_and_hour(logs)

    fields: Dict[str, object] = dict(
        total_views=total_views,
        unique_viewers=len(groups),
        avg_engagement=avg_engagement,
        hot_leads_count=hot,
        warm_leads_count=warm,
        cold_leads_count=cold,
        hot_leads=hot_leads,
        active_companies=active_companies,
        return_rate=calculate_return_rate(logs),
        download_rate=percent(sum(1 for log in logs if log.downloaded), total_views),
        qr_scan_rate=percent(sum(1 for log in logs if log.is_qr), total_views),
        avg_completion=_mean(completions) if completions else None,
        countries_count=len(countries),
        desktop_percent=_round_pct(devices["desktop"], total_views),
        mobile_percent=_round_pct(devices["mobile"] + devices["tablet"], total_views),
        social_traffic_percent=_round_pct(traffic["social"], total_views),
        search_traffic_percent=_round_pct(traffic["search"], total_views),
        referral_traffic_percent=_round_pct(traffic["referral"], total_views),
        peak_day=peak_day,
        peak_hour=peak_hour,
        companies_with_multiple_viewers=[c.name for c in active_companies],
        contact=options.contact_data,
        is_external_url=options.is_external_url,
        destination_url=options.destination_url,
    )
    fields.update(_media_metrics(logs))

    if countries:
        top_country, count = countries[0]
        fields["top_country"] = top_country
        fields["top_country_percent"] = _round_pct(count, total_views)

    if campaigns:
        campaign, views = campaigns[0]
        fields["top_utm_campaign"] = campaign
        fields["top_utm_campaign_views"] = views
        fields["top_utm_campaign_percent"] = _round_pct(views, total_views)

    if options.total_pages and options.total_pages > 1:
        fields.update(_page_analysis(logs, options.total_pages))

    if options.previous_period_views and options.previous_period_views > 0:
        prev = options.previous_period_views
        fields["views_change"] = round_half_up((total_views - prev) / prev * 100)
    if options.previous_period_engagement and options.previous_period_engagement > 0:
        prev = options.previous_period_engagement
        fields["engagement_change"] = round_half_up((avg_engagement - prev) / prev * 100)

    return InsightsSummary(**fields)


def calculate_analytics_summary(
    logs: Sequence[AccessLog],
    is_external_url: bool = False,
    total_pages: Optional[int] = None,
    now: Optional[datetime] = None,
) -> AnalyticsSummary:
    """
    Quick stats for a link: views, viewers, lead tiers, access methods, completion and timing.

    `avg_engagement` is the volume-gated link score, not a mean of viewer scores.
    """
    if not logs:
        return AnalyticsSummary()

    now = to_utc(now or datetime.now(timezone.utc))
    total_views = len(logs)
    strategy = get_scoring_strategy(is_external_url)

    tiers: Counter = Counter()
    for visits in group_by_viewer(logs).values():
        tiers[aggregate_viewer(visits, total_pages=total_pages, strategy=strategy).intent] += 1

    stats = get_return_stats(logs)
    qr_scans = sum(1 for log in logs if log.is_qr)
    completed = sum(1 for log in logs if (log.completion_percentage or 0) >= 90)
    total_time = sum(log.total_duration_seconds or 0 for log in logs)

    return AnalyticsSummary(
        total_views=total_views,
        unique_viewers=stats.unique_viewers,
        avg_engagement=calculate_link_score(logs, is_external_url=is_external_url, now=now),
        hot_leads=tiers["hot"],
        warm_leads=tiers["warm"],
        cold_leads=tiers["cold"],
        qr_scans=qr_scans,
        direct_clicks=total_views - qr_scans,
        completion_rate=_round_pct(completed, total_views),
        avg_time_spent=round_half_up(total_time / total_views),
        return_rate=stats.return_rate,
        return_visits=stats.return_viewers,
        download_count=sum(1 for log in logs if log.downloaded),
        views_today=sum(1 for log in logs if to_utc(log.accessed_at).date() == now.date()),
        last_view_at=latest_log(logs).accessed_at,
    )


def build_contact_summary(
    contact_logs: Sequence[AccessLog],
    colleague_emails: Iterable[str] = (),
    avg_engagement: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ContactSummary:
    """
    Signals for one contact across every file they opened.

    Args:
        contact_logs: Logs of a single viewer identity.
        colleague_emails: Other viewers seen on the same company domain.
        avg_engagement: Precomputed engagement; defaults to the mean of the
            contact's per-file viewer scores.
        now: Reference time for `last_visit_hours_ago`.

    Returns:
        ContactSummary: Defaults (no visits, 999h since last visit) when empty.
    """
    if not contact_logs:
        return ContactSummary()

    now = to_utc(now or datetime.now(timezone.utc))
    per_file: Dict[str, List[AccessLog]] = {}
    for log in contact_logs:
        per_file.setdefault(log.file_id or log.file_name or "", []).append(log)

    if avg_engagement is None:
        avg_engagement = round_half_up(_mean([calculate_aggregated_viewer_score(v) for v in per_file.values()]))

    downloaded = any(log.downloaded for log in contact_logs)
    return_visits = len(contact_logs) - 1
    last = latest_log(contact_logs)
    peak_day, peak_hour = peak_day_and_hour(contact_logs)

    file_names = Counter(log.file_name for log in contact_logs if log.file_name).most_common(1)
    own_email = viewer_key(contact_logs[0]).lower()
    colleagues = {e.lower() for e in colleague_emails if e} - {own_email}

    return ContactSummary(
        total_visits=len(contact_logs),
        files_viewed=len(per_file),
        total_time_spent=sum(log_duration(log) for log in contact_logs),
        avg_engagement=avg_engagement,
        is_high_intent=is_hot_lead(avg_engagement, downloaded, return_visits),
        has_downloaded=downloaded,
        return_visit_count=return_visits,
        last_visit_hours_ago=max(0, int((now - to_utc(last.accessed_at)).total_seconds() // 3600)),
        peak_active_day=peak_day,
        peak_active_hour=peak_hour,
        most_viewed_file=file_names[0][0] if file_names else None,
        colleague_count=len(colleagues),
        company_name=parse_company_from_email(last.viewer_email),
    )
