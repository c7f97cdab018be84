"""
Shared helpers for the analytics engine.

Responsibilities:
    - The single viewer identity key every grouping goes through
    - Half-up rounding and guarded percentages (0 instead of ZeroDivisionError)
    - Small presentation helpers (durations, relative times, flags, icons, badges)
    - Email/referrer parsing used to enrich leads and traffic sources

Notes:
    - Nothing here reads configuration or logs; every function is pure.
    - `round_half_up` mirrors the product's existing numbers: a .5 fraction
      always rounds toward +inf (Python's built-in `round` is banker's rounding).

LLM Prompt Example:
    "Write a pure helper module that groups access logs by a single viewer identity
    function, so return rate, lead counts and unique viewers can never drift apart."
"""

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from linklens.models import AccessLog, Section

__all__ = [
    "CONSUMER_EMAIL_DOMAINS",
    "DAY_NAMES",
    "viewer_key",
    "group_by_viewer",
    "round_half_up",
    "percent",
    "to_utc",
    "log_duration",
    "format_duration",
    "format_relative_time",
    "get_country_flag",
    "get_device_icon",
    "get_file_type_icon",
    "get_intent_signal",
    "get_intent_badge",
    "is_hot_lead",
    "is_consumer_domain",
    "email_domain",
    "parse_company_from_email",
    "parse_referrer_source",
    "detect_access_method",
    "section_for_file",
]

# Free mailbox providers: a shared domain here says nothing about an employer
CONSUMER_EMAIL_DOMAINS = frozenset({
    "gmail.com", "googlemail.com", "yahoo.com", "ymail.com", "hotmail.com",
    "outlook.com", "live.com", "msn.com", "aol.com", "icloud.com", "me.com",
    "mac.com", "protonmail.com", "proton.me", "zoho.com", "yandex.com",
    "mail.com", "naver.com", "daum.net", "hanmail.net", "kakao.com",
    "qq.com", "163.com",
})

# Sunday-first, matching the dashboards' day index
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_COUNTRY_FLAGS = {
    "United States": "🇺🇸", "USA": "🇺🇸", "South Korea": "🇰🇷", "Korea": "🇰🇷",
    "United Kingdom": "🇬🇧", "UK": "🇬🇧", "Germany": "🇩🇪", "France": "🇫🇷",
    "Japan": "🇯🇵", "China": "🇨🇳", "Canada": "🇨🇦", "Australia": "🇦🇺",
    "India": "🇮🇳", "Singapore": "🇸🇬", "Thailand": "🇹🇭", "Vietnam": "🇻🇳",
    "Indonesia": "🇮🇩", "Malaysia": "🇲🇾", "Philippines": "🇵🇭", "Brazil": "🇧🇷",
    "Mexico": "🇲🇽", "Spain": "🇪🇸", "Italy": "🇮🇹", "Netherlands": "🇳🇱",
    "Sweden": "🇸🇪", "Norway": "🇳🇴", "Denmark": "🇩🇰", "Finland": "🇫🇮",
    "Poland": "🇵🇱", "Russia": "🇷🇺", "Ukraine": "🇺🇦", "Israel": "🇮🇱",
    "UAE": "🇦🇪", "Saudi Arabia": "🇸🇦", "Turkey": "🇹🇷", "South Africa": "🇿🇦",
    "Nigeria": "🇳🇬", "Egypt": "🇪🇬", "Argentina": "🇦🇷", "Chile": "🇨🇱",
    "Colombia": "🇨🇴", "Peru": "🇵🇪", "New Zealand": "🇳🇿", "Ireland": "🇮🇪",
    "Switzerland": "🇨🇭", "Austria": "🇦🇹", "Belgium": "🇧🇪", "Portugal": "🇵🇹",
    "Czech Republic": "🇨🇿", "Romania": "🇷🇴", "Hungary": "🇭🇺", "Greece": "🇬🇷",
}

# Ordered: first substring match wins
_REFERRER_SOURCES = (
    ("google", ("google.com", "google.co")),
    ("bing", ("bing.com",)),
    ("yahoo", ("yahoo.com",)),
    ("duckduckgo", ("duckduckgo.com",)),
    ("facebook", ("facebook.com", "fb.com")),
    ("linkedin", ("linkedin.com",)),
    ("twitter", ("twitter.com", "x.com", "t.co")),
    ("instagram", ("instagram.com",)),
    ("tiktok", ("tiktok.com",)),
    ("youtube", ("youtube.com",)),
    ("reddit", ("reddit.com",)),
    ("pinterest", ("pinterest.com",)),
    ("slack", ("slack.com",)),
    ("discord", ("discord.com",)),
    ("telegram", ("t.me", "telegram.")),
    ("whatsapp", ("whatsapp.com",)),
    ("email", ("mail.", "outlook", "gmail")),
    ("notion", ("notion.so",)),
    ("github", ("github.com",)),
)


# ---------------------------------------------------------------------------
# Identity & grouping
# ---------------------------------------------------------------------------
def viewer_key(log: AccessLog) -> str:
    """Identity of the viewer behind a log: email, then IP, then session, then the log id."""
    return log.viewer_email or log.ip_address or log.session_id or str(log.id)


def group_by_viewer(logs: Iterable[AccessLog]) -> Dict[str, List[AccessLog]]:
    """Group logs by `viewer_key`, preserving first-seen viewer order."""
    groups: Dict[str, List[AccessLog]] = {}
    for log in logs:
        groups.setdefault(viewer_key(log), []).append(log)
    return groups


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------
def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> float:
    """Unrounded percentage of `part` in `whole`; 0 when `whole` is empty."""
    if not whole:
        return 0.0
    return part / whole * 100


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def log_duration(log: AccessLog) -> float:
    """
    Seconds spent on one visit.

    Uses `total_duration_seconds` when positive, otherwise the rounded sum of
    `pages_time_data` (older trackers only reported per-page times).
    """
    if log.total_duration_seconds and log.total_duration_seconds > 0:
        return log.total_duration_seconds
    if log.pages_time_data:
        return round_half_up(sum(t or 0 for t in log.pages_time_data.values()))
    return 0


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
def format_duration(seconds: float) -> str:
    seconds = int(seconds or 0)
    if seconds < 60:
        return f"{seconds}s"
    mins, secs = divmod(seconds, 60)
    return f"{mins}m {secs}s" if secs > 0 else f"{mins}m"


def format_relative_time(value: datetime, now: Optional[datetime] = None) -> str:
    now = to_utc(now or datetime.now(timezone.utc))
    diff_mins = int((now - to_utc(value)).total_seconds() // 60)
    diff_hours = diff_mins // 60
    diff_days = diff_hours // 24

    if diff_mins < 1:
        return "Just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return value.date().isoformat()


def get_country_flag(country: Optional[str]) -> str:
    return _COUNTRY_FLAGS.get(country or "", "🌍")


def get_device_icon(device_type: Optional[str] = None) -> str:
    if device_type in ("mobile", "tablet"):
        return "📱"
    return "💻"


def get_file_type_icon(mime_type: Optional[str] = None, link_type: Optional[str] = None) -> str:
    """Emoji for a file card, keyed on MIME type (or 🔗 for tracked URLs)."""
    if link_type == "url":
        return "🔗"
    if not mime_type:
        return "📄"

    mt = mime_type.lower()
    if "pdf" in mt:
        return "📕"
    if "presentation" in mt or "ppt" in mt:
        return "📊"
    if "document" in mt or "doc" in mt or "word" in mt:
        return "📘"
    if "sheet" in mt or "excel" in mt or "xls" in mt:
        return "📗"
    if any(k in mt for k in ("image", "png", "jpg", "jpeg")):
        return "🖼️"
    if any(k in mt for k in ("video", "mp4", "mov")):
        return "🎬"
    if "audio" in mt or "mp3" in mt:
        return "🎵"
    if any(k in mt for k in ("zip", "rar", "tar")):
        return "📦"
    return "📄"


def get_intent_signal(score: float) -> str:
    """Tier a 0-100 engagement score: >=70 hot, >=40 warm, else cold."""
    if score >= 70:
        return "hot"
    if score >= 40:
        return "warm"
    return "cold"


def get_intent_badge(score: float, signal: Optional[str] = None) -> Dict[str, str]:
    if signal == "hot" or score >= 70:
        return {"icon": "🔥", "label": "Hot", "bg_color": "bg-red-100", "text_color": "text-red-700"}
    if signal == "warm" or score >= 40:
        return {"icon": "🟡", "label": "Warm", "bg_color": "bg-yellow-100", "text_color": "text-yellow-700"}
    return {"icon": "⚪", "label": "Cold", "bg_color": "bg-slate-100", "text_color": "text-slate-600"}


def is_hot_lead(score: float, downloaded: bool, return_visit_count: int) -> bool:
    """
    Stricter lead flag used on file viewer lists.

    Hot when the score is >= 80, or >= 70 with a download, or >= 60 with at
    least two return visits.
    """
    if score >= 80:
        return True
    if score >= 70 and downloaded:
        return True
    return score >= 60 and return_visit_count >= 2


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def email_domain(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()
    return domain or None


def is_consumer_domain(domain: Optional[str]) -> bool:
    return (domain or "").lower() in CONSUMER_EMAIL_DOMAINS


def parse_company_from_email(email: Optional[str]) -> Optional[str]:
    """
    Guess an employer name from an email address.

    >>> parse_company_from_email("jane@acme.io")
    'Acme'
    >>> parse_company_from_email("jane@gmail.com") is None
    True
    """
    domain = email_domain(email)
    if not domain or is_consumer_domain(domain):
        return None
    parts = domain.split(".")
    if len(parts) < 2 or not parts[0]:
        return None
    return parts[0][:1].upper() + parts[0][1:]


def parse_referrer_source(referrer: Optional[str]) -> str:
    if not referrer:
        return "direct"
    url = referrer.lower()
    for source, needles in _REFERRER_SOURCES:
        if any(n in url for n in needles):
            return source
    return "other"


def detect_access_method(
    referrer: Optional[str] = None,
    utm_medium: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> str:
    """Return "qr_scan" for QR-tagged or scanner-app traffic, else "direct_click"."""
    if utm_medium == "qr":
        return "qr_scan"
    if user_agent:
        ua = user_agent.lower()
        if "scanner" in ua or "qr" in ua:
            return "qr_scan"
    return "direct_click"


def section_for_file(mime_type: Optional[str] = None, link_type: Optional[str] = None) -> Section:
    """
    Pick the insights section for a file detail page.

    Args:
        mime_type: File MIME type (e.g. "application/pdf", "video/mp4").
        link_type: "url" for tracked external links, "file" otherwise.

    Returns:
        Section: FILE_URL, FILE_DOC, FILE_MEDIA, FILE_IMAGE or FILE_OTHER.
    """
    if link_type == "url":
        return Section.FILE_URL
    mt = (mime_type or "").lower()
    if mt.startswith("image/"):
        return Section.FILE_IMAGE
    if mt.startswith("video/") or mt.startswith("audio/"):
        return Section.FILE_MEDIA
    if any(k in mt for k in ("pdf", "document", "presentation", "msword", "sheet", "excel", "powerpoint", "text/")):
        return Section.FILE_DOC
    return Section.FILE_OTHER
