# -*- coding: utf-8 -*-
"""Background task running the recommendation pipeline once a day."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from ..config import settings
from ..dates import utc_now
from .pipeline import run_daily_recommendations

logger = logging.getLogger(__name__)


def seconds_until(hour_utc: int, now: Optional[datetime] = None) -> float:
    now = now or utc_now()
    target = now.replace(hour=hour_utc % 24, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyScheduler:
    def __init__(
        self,
        job: Callable[[], Awaitable[object]] = run_daily_recommendations,
        *,
        hour_utc: Optional[int] = None,
    ) -> None:
        self.job = job
        self.hour_utc = settings.recommendation_hour_utc if hour_utc is None else hour_utc
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while True:
            delay = seconds_until(self.hour_utc)
            logger.info("next recommendation run in %.0f s", delay)
            await asyncio.sleep(delay)
            try:
                await self.job()
            except Exception:
                logger.exception("scheduled recommendation run failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("recommendation scheduler started (hour %02d:00 UTC)", self.hour_utc)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("recommendation scheduler stopped")


scheduler = DailyScheduler()
