"""
Per-viewer engagement scoring strategies.

Provided strategies:
- FileScoringStrategy: Time(25%) + Completion(25%) + Download(20%) + Return(15%) + Depth(15%)
- TrackSiteScoringStrategy: Return(60%) + Frequency(40%), for external URLs tracked by click

Common helpers:
- time_score: piecewise ramp of total seconds spent -> 0..100
- classify_intent: 0..100 -> "hot" | "warm" | "cold"

Selection:
- `get_scoring_strategy(is_external_url=...)` picks the formula the caller needs;
  a registry name ("file" or "track-site") may be passed explicitly.

Notes:
- Strategies are stateless and frozen; one instance can be shared across requests.
- A single click on a tracked URL scores 13 (frequency 33 x 0.40). This is
  intentional: the click itself is a weak but real signal.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from linklens.analytics.helpers import get_intent_signal, round_half_up

__all__ = [
    "ViewerSignals",
    "BaseScoringStrategy",
    "FileScoringStrategy",
    "TrackSiteScoringStrategy",
    "STRATEGY_REGISTRY",
    "get_scoring_strategy",
    "time_score",
    "classify_intent",
]

# (upper bound in seconds, score at segment start, segment span in points)
_TIME_SEGMENTS = (
    (30, 0, 25),
    (60, 25, 15),
    (120, 40, 20),
    (300, 60, 20),
    (600, 80, 20),
)


@dataclass(frozen=True)
class ViewerSignals:
    """Signals accumulated over all visits of one viewer."""
    total_clicks: int = 1
    total_duration_seconds: float = 0
    max_completion_percentage: float = 0
    max_page_reached: int = 0
    downloaded: bool = False
    total_pages: Optional[int] = None

    @property
    def is_return_visitor(self) -> bool:
        return self.total_clicks > 1


def time_score(seconds: float) -> int:
    """
    Map total seconds spent to 0..100.

    0s -> 0, 30s -> 25, 60s -> 40, 120s -> 60, 300s -> 80, >=600s -> 100,
    linear inside each segment with the increment rounded half-up.
    """
    if not seconds or seconds <= 0:
        return 0
    lower = 0
    for upper, base, span in _TIME_SEGMENTS:
        if seconds < upper:
            return base + round_half_up((seconds - lower) / (upper - lower) * span)
        lower = upper
    return 100


def classify_intent(score: float) -> str:
    return get_intent_signal(score)


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


class BaseScoringStrategy(ABC):
    """Abstract base for per-viewer scoring formulas."""

    @abstractmethod
    def score(self, signals: ViewerSignals) -> int:  # pragma: no cover
        """
        Score one viewer.

        Args:
            signals (ViewerSignals): Aggregated visits of the viewer.

        Returns:
            int: Engagement score in [0, 100].
        """
        raise NotImplementedError


@dataclass(frozen=True)
class FileScoringStrategy(BaseScoringStrategy):
    """Weighted time/completion/download/return/depth score for uploaded files."""
    time_weight: float = 0.25
    completion_weight: float = 0.25
    download_weight: float = 0.20
    return_weight: float = 0.15
    depth_weight: float = 0.15

    def depth_score(self, signals: ViewerSignals) -> float:
        completion = _clamp(signals.max_completion_percentage or 0)
        # Single-page files, videos and images fall back to completion
        if signals.total_pages and signals.total_pages > 1 and signals.max_page_reached > 0:
            return _clamp(round_half_up(signals.max_page_reached / signals.total_pages * 100))
        return completion

    def score(self, signals: ViewerSignals) -> int:
        weighted = (
            time_score(signals.total_duration_seconds) * self.time_weight
            + _clamp(signals.max_completion_percentage or 0) * self.completion_weight
            + (100 if signals.downloaded else 0) * self.download_weight
            + (100 if signals.is_return_visitor else 0) * self.return_weight
            + self.depth_score(signals) * self.depth_weight
        )
        return int(_clamp(round_half_up(weighted)))


@dataclass(frozen=True)
class TrackSiteScoringStrategy(BaseScoringStrategy):
    """Return(60%) + Frequency(40%) score for tracked external URLs."""
    return_weight: float = 0.60
    frequency_weight: float = 0.40
    points_per_click: int = 33

    def frequency_score(self, clicks: int) -> int:
        return min(100, max(0, clicks) * self.points_per_click)

    def score(self, signals: ViewerSignals) -> int:
        weighted = (
            (100 if signals.is_return_visitor else 0) * self.return_weight
            + self.frequency_score(signals.total_clicks) * self.frequency_weight
        )
        return int(_clamp(round_half_up(weighted)))


# Strategy registry and factory
STRATEGY_REGISTRY: Dict[str, Type[BaseScoringStrategy]] = {
    "file": FileScoringStrategy,
    "track-site": TrackSiteScoringStrategy,
}


def get_scoring_strategy(is_external_url: bool = False, name: Optional[str] = None) -> BaseScoringStrategy:
    """
    Resolve the scoring strategy for a link.

    An explicit registry `name` wins; otherwise `is_external_url` selects the
    track-site formula. Unknown names fall back to the file formula.
    """
    if name:
        cls = STRATEGY_REGISTRY.get(name.strip().lower(), FileScoringStrategy)
    else:
        cls = TrackSiteScoringStrategy if is_external_url else FileScoringStrategy
    return cls()
