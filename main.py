"""
Main API module for LinkLens Analytics.

Responsibilities:
    - Expose the analytics engine over JSON for the product's HTTP layer
    - Validate request bodies (logs, section, options) at the edge
    - Return insights, actions, summaries and return stats with camelCase keys

Architecture:
    - App Factory pattern (create_app) for test isolation.
    - Stateless: logs arrive with every request; nothing is stored.
    - AnalyticsManager orchestrates the pure engine functions.

LLM Prompt Example:
    "Explain how to put a thin FastAPI layer in front of a pure analytics library
    with an application factory and pydantic request models."
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from linklens.config import settings
from linklens.manager.analytics_manager import AnalyticsManager
from linklens.models import AccessLog, Section, SummaryOptions


class AnalyticsRequest(BaseModel):
    """Request payload shared by every analytics endpoint."""
    logs: List[AccessLog] = Field(default_factory=list)
    section: Section = Section.DASHBOARD
    options: Optional[SummaryOptions] = None
    max_total: Optional[int] = Field(default=None, ge=1, le=20)


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value


def create_app() -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Returns:
        FastAPI: A configured application with its own AnalyticsManager.
    """
    app = FastAPI(
        title="LinkLens Analytics",
        description="Engagement scoring, insights and recommended actions from access logs",
        docs_url="/docs",
    )
    log = logging.getLogger("linklens")

    # basic console logging (optional)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    manager = AnalyticsManager(max_insights=settings.MAX_INSIGHTS_TOTAL)
    log.info("LinkLens analytics ready (max insights: %d)", settings.MAX_INSIGHTS_TOTAL)

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.post("/analytics/summary")
    def analytics_summary(req: AnalyticsRequest) -> Dict[str, Any]:
        return _dump(manager.summarize(req.logs, req.options))

    @app.post("/analytics/insights")
    def analytics_insights(req: AnalyticsRequest) -> List[Dict[str, Any]]:
        """
        Ranked insights for the requested section (HIGH -> MEDIUM -> LOW).

        Raises:
            HTTPException: 422 if the engine rejects the section.
        """
        try:
            return _dump(manager.insights(req.logs, req.section, req.options, req.max_total))
        except ValueError as ve:
            raise HTTPException(status_code=422, detail=str(ve))

    @app.post("/analytics/actions")
    def analytics_actions(req: AnalyticsRequest) -> List[Dict[str, Any]]:
        try:
            return _dump(manager.actions(req.logs, req.section, req.options))
        except ValueError as ve:
            raise HTTPException(status_code=422, detail=str(ve))

    @app.post("/analytics/report")
    def analytics_report(req: AnalyticsRequest) -> Dict[str, Any]:
        """
        Summary, insights, actions and viewer scores in one response.

        LLM Prompt Example:
            "Show how one endpoint can return several derived views of the same
            input while computing the shared summary only once."
        """
        try:
            return _dump(manager.report(req.logs, req.section, req.options, req.max_total))
        except ValueError as ve:
            raise HTTPException(status_code=422, detail=str(ve))

    @app.post("/analytics/return-stats")
    def analytics_return_stats(req: AnalyticsRequest) -> Dict[str, Any]:
        return _dump(manager.return_stats(req.logs))

    return app


# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
