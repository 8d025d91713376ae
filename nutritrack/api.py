# -*- coding: utf-8 -*-
"""
NutriTrack API

Profiles, food and activity diaries, steps, weights and daily AI nutrition
recommendations.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .activity.api import router as activity_router
from .config import settings
from .dashboard.api import router as dashboard_router
from .diary.api import router as diary_router
from .foods.api import router as foods_router
from .middleware import install as install_http_plumbing
from .notifications.api import router as notifications_router
from .notifications.api import test_router as test_notifications_router
from .recommendations.api import router as recommendations_router
from .recommendations.api import test_router as test_recommendations_router
from .recommendations.scheduler import scheduler
from .steps.api import router as steps_router
from .users.api import router as users_router

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="NutriTrack",
    description="Nutrition and fitness tracking backend",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
install_http_plumbing(app)


@app.on_event("startup")
async def _startup_scheduler() -> None:
    if settings.recommendation_schedule_enabled:
        scheduler.start()
    else:
        logger.info("recommendation scheduler disabled (RECOMMENDATION_SCHEDULE_ENABLED)")


@app.on_event("shutdown")
async def _shutdown_scheduler() -> None:
    await scheduler.stop()


# Activity routes first: /diary/activity/* must not fall through to the diary router.
app.include_router(activity_router)
app.include_router(diary_router)
app.include_router(users_router)
app.include_router(foods_router)
app.include_router(steps_router)
app.include_router(recommendations_router)
app.include_router(dashboard_router)
app.include_router(notifications_router)
app.include_router(test_notifications_router)
app.include_router(test_recommendations_router)


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe."""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("NUTRITRACK_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("NUTRITRACK_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("nutritrack.api:app", host=host, port=port, reload=False)
