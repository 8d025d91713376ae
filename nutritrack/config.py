from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    """Centralized configuration for the nutrition tracking backend."""

    def __init__(self) -> None:
        # ---- Hosted store (Supabase / PostgREST) ----
        self.supabase_url: str = (os.environ.get("SUPABASE_URL") or "").rstrip("/")
        # Anonymous key; combined with the caller's bearer token for user-scoped access.
        self.supabase_key: str = os.environ.get("SUPABASE_KEY") or ""
        # Elevated key for jobs without a per-request user (pipeline, notifications).
        self.supabase_service_role_key: str = os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or ""
        self.supabase_timeout: float = float(os.environ.get("SUPABASE_TIMEOUT") or "15")

        # Local single-file store. When set, it replaces the hosted store entirely.
        sqlite_path = os.environ.get("NUTRITRACK_SQLITE_PATH")
        self.sqlite_path: Optional[Path] = Path(sqlite_path).expanduser() if sqlite_path else None

        # ---- Auth ----
        # Shared secret the hosted auth service signs access tokens with (HS256).
        self.jwt_secret: str = os.environ.get("JWT_SECRET") or ""

        # ---- Completion API (OpenAI compatible) ----
        self.openai_api_key: str | None = os.environ.get("OPENAI_API_KEY")
        self.openai_base_url: str = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.openai_model: str = os.environ.get("OPENAI_MODEL", "gpt-4o")
        self.openai_timeout: float = float(os.environ.get("OPENAI_TIMEOUT", "60"))
        self.openai_temperature: float = float(os.environ.get("OPENAI_TEMPERATURE", "0.5"))

        # ---- Recommendation pipeline ----
        self.recommendation_language: str = os.environ.get("RECOMMENDATION_LANGUAGE", "Czech")
        # profiles | push_tokens
        self.recommendation_user_source: str = (
            os.environ.get("RECOMMENDATION_USER_SOURCE") or "push_tokens"
        ).strip().lower()
        self.recommendation_schedule_enabled: bool = (
            os.environ.get("RECOMMENDATION_SCHEDULE_ENABLED") or ""
        ).strip() in {"1", "true", "True"}
        self.recommendation_hour_utc: int = int(os.environ.get("RECOMMENDATION_HOUR_UTC") or "0")
        self.recommendation_notification_title: str = os.environ.get(
            "RECOMMENDATION_NOTIFICATION_TITLE", "Nové doporučení k dispozici"
        )
        self.recommendation_notification_body: str = os.environ.get(
            "RECOMMENDATION_NOTIFICATION_BODY",
            "Podívejte se na své nové nutriční doporučení na základě včerejšího jídelníčku.",
        )

        # ---- Push notifications (Expo) ----
        self.expo_push_url: str = os.environ.get("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")
        self.expo_access_token: str | None = os.environ.get("EXPO_ACCESS_TOKEN")
        self.expo_timeout: float = float(os.environ.get("EXPO_TIMEOUT", "30"))

        # ---- HTTP ----
        self.log_level: str = (os.environ.get("NUTRITRACK_LOG_LEVEL") or "INFO").upper()
        cors = os.environ.get("NUTRITRACK_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
