"""
Runtime configuration for LinkLens Analytics
===========================================

Simple settings module that reads from environment variables (only here),
and exposes a stable `settings` object for the rest of the codebase.
Avoid reading env vars anywhere else; import from this module instead.

Logging
-------
- LINKLENS_LOG_LEVEL            : root log level used by the app factory (default "INFO")

Insights
--------
- LINKLENS_MAX_INSIGHTS         : default cap on generated insights (default 8; clamped to [1, 20])
- LINKLENS_MAX_INSIGHTS_VISIBLE : how many insights a UI shows before "+N more" (default 5)

Link-level (volume-gated) scores
--------------------------------
- LINKLENS_VIEWER_VOLUME_CAP    : max visits a single viewer adds to link volume (default 3)
- LINKLENS_FULL_VOLUME_VIEWS    : effective views at which quality bonuses apply in full (default 500)
"""

import os


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


class _Settings:
    # -------- Logging --------
    LOG_LEVEL: str = os.getenv("LINKLENS_LOG_LEVEL", "INFO").strip().upper()

    # -------- Insights --------
    MAX_INSIGHTS_TOTAL: int = max(1, min(20, _get_int("LINKLENS_MAX_INSIGHTS", 8)))
    MAX_INSIGHTS_VISIBLE: int = max(1, min(20, _get_int("LINKLENS_MAX_INSIGHTS_VISIBLE", 5)))

    # -------- Link-level scores --------
    # One enthusiastic viewer must not carry a small link on their own
    VIEWER_VOLUME_CAP: int = max(1, _get_int("LINKLENS_VIEWER_VOLUME_CAP", 3))
    FULL_VOLUME_VIEWS: int = max(1, _get_int("LINKLENS_FULL_VOLUME_VIEWS", 500))


settings = _Settings()
