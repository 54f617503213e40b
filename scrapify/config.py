"""Startup configuration.

Values are plain settings consumed once when the catalog and orchestrator
are built. The CLI fills them from command line options, which also read
``SCRAPIFY_*`` environment variables.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ScrapifyConfig(BaseModel):
    """Settings for building the catalog and orchestrator.

    Attributes:
        browser_headless: Run headless-browser adapters without a window.
        browser_settle_delay: Seconds to wait after navigation for
            client-side rendering to finish.
        activity_capacity: Number of attempts the activity log retains.
        recent_activity_size: Entries reported as recent activity in status.
    """

    browser_headless: bool = True
    browser_settle_delay: float = Field(default=3.0, ge=0)
    activity_capacity: int = Field(default=100, gt=0)
    recent_activity_size: int = Field(default=10, gt=0)
