"""
Pydantic models for the LinkLens analytics engine.

Responsibilities:
    - Define the canonical AccessLog record (input, immutable)
    - Define every derived shape the engine returns (summary, insights, actions)
    - Keep wire names stable: access logs use the persisted snake_case columns,
      derived objects serialize with camelCase aliases (`hotLeadsCount`, ...)

Notes:
    - Python attributes are always snake_case; call
      `model_dump(by_alias=True)` to get the camelCase wire format.
    - Derived models accept either spelling on input (`populate_by_name`).

LLM Prompt Example:
    "Show how to keep one set of pydantic models readable from Python while
    serializing them in the camelCase shape an existing JSON client expects."
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "Section",
    "Priority",
    "InsightCategory",
    "AccessLog",
    "AggregatedViewer",
    "HotLeadInfo",
    "CompanyInfo",
    "ContactSummary",
    "InsightsSummary",
    "SummaryOptions",
    "Insight",
    "ActionButton",
    "UnifiedAction",
    "ReturnStats",
    "AnalyticsSummary",
    "TopItem",
    "PageAnalysis",
    "parse_logs",
]


class Section(str, Enum):
    """UI context requesting insights/actions; filters which rules are eligible."""
    DASHBOARD = "dashboard"
    FILE_DOC = "file-doc"
    FILE_MEDIA = "file-media"
    FILE_IMAGE = "file-image"
    FILE_OTHER = "file-other"
    FILE_URL = "file-url"
    TRACK_SITE = "track-site"
    CONTACTS = "contacts"
    ANALYTICS = "analytics"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InsightCategory(str, Enum):
    ENGAGEMENT = "engagement"
    AUDIENCE = "audience"
    TRAFFIC = "traffic"
    TIMING = "timing"
    CONTENT = "content"
    TREND = "trend"
    BEHAVIOR = "behavior"


class _CamelModel(BaseModel):
    """Base for derived objects: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------
class AccessLog(BaseModel):
    """
    One record of a single viewer touching a link/file at a point in time.

    Field names match the persisted access-log table exactly. Every field
    except `id` and `accessed_at` is optional; the engine treats missing
    values as 0/False/empty.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    # identity
    id: str
    viewer_email: Optional[str] = None
    viewer_name: Optional[str] = None
    ip_address: Optional[str] = None
    session_id: Optional[str] = None

    # timing
    accessed_at: datetime
    total_duration_seconds: Optional[float] = None
    # Trackers may report a page with no time yet; readers treat None as 0
    pages_time_data: Optional[Dict[int, Optional[float]]] = None
    exit_page: Optional[int] = None
    max_page_reached: Optional[int] = None
    total_pages: Optional[int] = None

    # content signals
    completion_percentage: Optional[float] = None
    video_completion_percent: Optional[float] = None
    video_duration_seconds: Optional[float] = None
    watch_time_seconds: Optional[float] = None
    downloaded: Optional[bool] = None
    download_count: Optional[int] = None

    # context
    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    language: Optional[str] = None

    # acquisition
    referrer: Optional[str] = None
    referrer_source: Optional[str] = None
    traffic_source: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    access_method: Optional[str] = None
    is_qr_scan: Optional[bool] = None
    is_return_visit: Optional[bool] = None

    # association
    file_id: Optional[str] = None
    file_name: Optional[str] = None

    @field_validator("id", "file_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        # Rows from SQL come with integer primary keys
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_qr(self) -> bool:
        return bool(self.is_qr_scan) or self.access_method == "qr_scan"


def parse_logs(rows: List[Any]) -> List[AccessLog]:
    """
    Validate raw rows (dicts or AccessLog instances) into AccessLog models.

    Raises:
        pydantic.ValidationError: If a row is missing `id`/`accessed_at`
            or carries values of the wrong type.
    """
    return [row if isinstance(row, AccessLog) else AccessLog.model_validate(row) for row in rows or []]


# ---------------------------------------------------------------------------
# Derived
# ---------------------------------------------------------------------------
class AggregatedViewer(_CamelModel):
    """One unique viewer identity within a log set; rebuilt on every call."""
    identity: str
    viewer_email: Optional[str] = None
    viewer_name: Optional[str] = None
    total_clicks: int = 0
    is_return_visitor: bool = False
    total_duration_seconds: float = 0
    max_completion_percentage: float = 0
    max_page_reached: int = 0
    downloaded: bool = False
    engagement_score: int = 0
    intent: str = "cold"
    last_accessed_at: Optional[datetime] = None
    file_id: Optional[str] = None
    file_name: Optional[str] = None


class HotLeadInfo(_CamelModel):
    name: str
    email: Optional[str] = None
    company: Optional[str] = None
    score: int
    file_name: Optional[str] = None
    file_id: Optional[str] = None
    is_return: bool = False
    downloaded: bool = False
    visit_count: int = 1


class CompanyInfo(_CamelModel):
    name: str
    domain: str
    viewer_count: int
    emails: List[str] = Field(default_factory=list)


class ContactSummary(_CamelModel):
    """Per-contact signals, passed through to the contacts section rules."""
    total_visits: int = 0
    files_viewed: int = 0
    total_time_spent: float = 0
    avg_engagement: int = 0
    is_high_intent: bool = False
    has_downloaded: bool = False
    return_visit_count: int = 0
    last_visit_hours_ago: int = 999
    peak_active_day: Optional[str] = None
    peak_active_hour: Optional[str] = None
    most_viewed_file: Optional[str] = None
    colleague_count: Optional[int] = None
    company_name: Optional[str] = None


class InsightsSummary(_CamelModel):
    """
    Flat, precomputed metrics read by both rule engines.

    Built once by `calculate_insights_summary`; every field has a default so
    callers (and tests) can assemble partial summaries by hand.
    """
    # Basic metrics
    total_views: int = 0
    unique_viewers: int = 0
    avg_engagement: int = 0

    # Lead counts
    hot_leads_count: int = 0
    warm_leads_count: int = 0
    cold_leads_count: int = 0

    # Lead details (for actions)
    hot_leads: List[HotLeadInfo] = Field(default_factory=list)
    active_companies: List[CompanyInfo] = Field(default_factory=list)

    # Rates
    return_rate: int = 0
    download_rate: float = 0
    qr_scan_rate: float = 0

    # Document-specific
    avg_completion: Optional[float] = None
    high_drop_off_page: Optional[int] = None
    high_drop_off_rate: Optional[int] = None
    most_engaging_page: Optional[int] = None
    most_engaging_page_time: Optional[float] = None
    avg_page_time: Optional[float] = None

    # Media-specific
    avg_watch_time: Optional[float] = None
    watch_completion: Optional[float] = None
    finished_count: Optional[int] = None
    early_drop_rate: Optional[int] = None

    # Trends
    views_change: Optional[int] = None
    engagement_change: Optional[int] = None

    # Geographic
    top_country: Optional[str] = None
    top_country_percent: Optional[int] = None
    countries_count: Optional[int] = None

    # Device
    mobile_percent: Optional[int] = None
    desktop_percent: Optional[int] = None

    # Traffic
    social_traffic_percent: Optional[int] = None
    search_traffic_percent: Optional[int] = None
    referral_traffic_percent: Optional[int] = None

    # UTM
    top_utm_campaign: Optional[str] = None
    top_utm_campaign_views: Optional[int] = None
    top_utm_campaign_percent: Optional[int] = None

    # Timing
    peak_day: Optional[str] = None
    peak_hour: Optional[str] = None

    # Companies
    companies_with_multiple_viewers: List[str] = Field(default_factory=list)

    # Contacts section
    contact: Optional[ContactSummary] = None

    # External URL / track site
    is_external_url: bool = False
    destination_url: Optional[str] = None


class SummaryOptions(_CamelModel):
    """
    Optional inputs for `calculate_insights_summary`.

    Attributes:
        total_pages: Page count of the document; enables page analysis when > 1.
        previous_period_views: Baseline for `views_change` (ignored unless > 0).
        previous_period_engagement: Baseline for `engagement_change` (ignored unless > 0).
        is_external_url: Score with the track-site formulas instead of the file ones.
        contact_data: Passed through unchanged for the contacts section.
        destination_url: Passed through for track-site sections.
        now: Reference time for recency-based scores (defaults to current UTC time).
    """
    total_pages: Optional[int] = None
    previous_period_views: Optional[int] = None
    previous_period_engagement: Optional[float] = None
    is_external_url: bool = False
    contact_data: Optional[ContactSummary] = None
    destination_url: Optional[str] = None
    now: Optional[datetime] = None


class Insight(_CamelModel):
    id: str
    icon: str
    text: str
    implication: str
    priority: Priority
    category: InsightCategory


class ActionButton(_CamelModel):
    """Presentation-only label; executing the action is the caller's concern."""
    label: str
    icon: str


class UnifiedAction(_CamelModel):
    id: str
    priority: Priority
    icon: str
    title: str
    reason: str
    buttons: List[ActionButton] = Field(default_factory=list)


class ReturnStats(_CamelModel):
    return_rate: int = 0
    unique_viewers: int = 0
    return_viewers: int = 0
    total_views: int = 0


class AnalyticsSummary(_CamelModel):
    """Quick-stats block shown above a link's analytics."""
    total_views: int = 0
    unique_viewers: int = 0
    avg_engagement: int = 0
    hot_leads: int = 0
    warm_leads: int = 0
    cold_leads: int = 0
    qr_scans: int = 0
    direct_clicks: int = 0
    completion_rate: int = 0
    avg_time_spent: int = 0
    return_rate: int = 0
    return_visits: int = 0
    download_count: int = 0
    views_today: int = 0
    last_view_at: Optional[datetime] = None


class TopItem(_CamelModel):
    name: str
    count: int
    percentage: int


class PageAnalysis(_CamelModel):
    page: int
    avg_time: int = 0
    views: int = 0
    drop_off_rate: int = 0
    is_popular: bool = False
    has_high_drop_off: bool = False
