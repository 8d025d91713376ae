# -*- coding: utf-8 -*-
"""Nightly recommendation pipeline.

For every candidate user: read yesterday's diary, build the prompt, ask the
completion API, store the raw answer and notify the user's devices. Users
are processed one after another; a failure is logged and the run moves on to
the next user. There are no retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Awaitable, Callable, Dict, List, Optional

from ..completion import CompletionClient, get_completion_client
from ..config import settings
from ..dates import yesterday
from ..diary.aggregator import find_daily_diary
from ..diary.storage import list_food_entries
from ..gateway import Gateway, TableClient, distinct_values, get_gateway
from ..notifications.dispatcher import NotificationDispatcher, get_dispatcher
from ..notifications.tokens import user_ids_with_push_tokens
from ..users.storage import find_profile, latest_weight, to_kg
from .prompt import PROMPT_VERSION, build_prompt
from .storage import create_recommendation, find_recommendation

logger = logging.getLogger(__name__)

UserSource = Callable[[TableClient], Awaitable[List[str]]]


async def users_from_profiles(db: TableClient) -> List[str]:
    return await distinct_values(db, "user_profiles", "user_id")


USER_SOURCES: Dict[str, UserSource] = {
    "profiles": users_from_profiles,
    "push_tokens": user_ids_with_push_tokens,
}


def resolve_user_source(name: Optional[str] = None) -> UserSource:
    key = (name or settings.recommendation_user_source).strip().lower()
    try:
        return USER_SOURCES[key]
    except KeyError as exc:
        raise ValueError(f"Unknown recommendation user source: {key!r} (expected one of {sorted(USER_SOURCES)})") from exc


@dataclass
class PipelineReport:
    analyzed_date: str
    processed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "analyzed_date": self.analyzed_date,
            "processed": list(self.processed),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


class RecommendationPipeline:
    def __init__(
        self,
        *,
        gateway: Optional[Gateway] = None,
        completion: Optional[CompletionClient] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        user_source: Optional[UserSource] = None,
        model: Optional[str] = None,
    ) -> None:
        self.gateway = gateway or get_gateway()
        self.completion = completion or get_completion_client()
        self.dispatcher = dispatcher or get_dispatcher()
        self.user_source = user_source or resolve_user_source()
        self.model = model or settings.openai_model

    async def _prompt_profile(self, db: TableClient, profile: dict) -> dict:
        """Profile values the prompt states in kilograms."""
        latest = await latest_weight(db, profile["user_id"])
        if latest is not None:
            weight = latest["weight_kg"]
        elif profile.get("weight_value") is not None:
            weight = to_kg(profile["weight_value"], profile.get("weight_unit") or "kg")
        else:
            weight = None
        target = profile.get("target_weight_value")
        if target is not None:
            target = to_kg(target, profile.get("target_weight_unit") or "kg")
        return {**profile, "weight_value": weight, "target_weight_value": target}

    async def process_user(self, db: TableClient, user_id: str, day: date) -> bool:
        """Returns False when there is nothing to analyze for the user."""
        if await find_recommendation(db, user_id, day) is not None:
            logger.info("recommendation for user %s on %s already exists, skipping", user_id, day)
            return False

        diary = await find_daily_diary(db, user_id, day)
        entries = await list_food_entries(db, diary["id"]) if diary is not None else []
        if not entries:
            logger.info("no food entries for user %s on %s, skipping", user_id, day)
            return False

        profile = await find_profile(db, user_id)
        if profile is None:
            logger.warning("no profile for user %s, skipping", user_id)
            return False

        prompt = build_prompt(await self._prompt_profile(db, profile), {**diary, "food_entries": entries})
        response = await self.completion.generate(prompt, self.model)

        saved = await create_recommendation(
            db,
            user_id=user_id,
            analyzed_date=day,
            prompt_version=PROMPT_VERSION,
            prompt=prompt,
            response=response,
            model_used=self.model,
        )
        await self.dispatcher.send(
            user_id,
            settings.recommendation_notification_title,
            settings.recommendation_notification_body,
            {"recommendationId": saved["id"]},
        )
        logger.info("recommendation %s stored for user %s", saved["id"], user_id)
        return True

    async def run(self, day: Optional[date] = None) -> PipelineReport:
        day = day or yesterday()
        report = PipelineReport(analyzed_date=day.isoformat())
        logger.info("daily recommendations for %s: starting", day)

        db = self.gateway.for_service()
        user_ids = await self.user_source(db)
        for user_id in user_ids:
            try:
                if await self.process_user(db, user_id, day):
                    report.processed.append(user_id)
                else:
                    report.skipped.append(user_id)
            except Exception:
                logger.exception("recommendation for user %s failed", user_id)
                report.failed.append(user_id)

        logger.info(
            "daily recommendations for %s: %d processed, %d skipped, %d failed",
            day,
            len(report.processed),
            len(report.skipped),
            len(report.failed),
        )
        return report


async def run_daily_recommendations(day: Optional[date] = None) -> PipelineReport:
    return await RecommendationPipeline().run(day)
