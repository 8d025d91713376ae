# -*- coding: utf-8 -*-
"""Daily AI nutrition recommendations."""

from .pipeline import PipelineReport, RecommendationPipeline, run_daily_recommendations
from .prompt import PROMPT_VERSION, build_prompt

__all__ = [
    "PROMPT_VERSION",
    "PipelineReport",
    "RecommendationPipeline",
    "build_prompt",
    "run_daily_recommendations",
]
