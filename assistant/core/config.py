"""Application settings and configuration helpers."""

from __future__ import annotations

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable, List

import pytz
from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(default="Classroom Assistant", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    staleness_minutes: float = Field(
        default=30.0,
        gt=0,
        description="Idle time after which an unfinished action is silently discarded.",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often stale conversations are evicted in the background.",
    )
    new_intent_confidence_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Extractor confidence at which a different action replaces the ongoing one.",
    )
    announce_abandoned_actions: bool = Field(
        default=False,
        description="Tell the user when a new request replaces an unfinished one.",
    )
    timezone: str | None = Field(
        default=None,
        description="IANA timezone used to resolve relative dates. Defaults to the server's local time.",
    )

    actions_base_url: AnyHttpUrl | None = Field(
        default=None,
        description="Classroom backend that executes finalized actions. Dry-run when omitted.",
    )
    actions_api_token: str | None = Field(
        default=None,
        description="Bearer token sent to the classroom backend.",
    )
    actions_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for classroom backend calls.",
    )

    frontend_origin: AnyHttpUrl | None = Field(
        default=None,
        description="Allowed frontend origin (CORS). If omitted, defaults to localhost dev server.",
    )
    additional_origins: List[AnyHttpUrl] = Field(
        default_factory=list,
        description="Additional allowed CORS origins for multi-client deployments.",
    )

    @property
    def staleness(self) -> timedelta:
        return timedelta(minutes=self.staleness_minutes)

    @property
    def clock(self) -> Callable[[], datetime]:
        """Return a callable giving the current time in the configured zone."""

        if not self.timezone:
            return datetime.now
        zone = pytz.timezone(self.timezone)
        return lambda: datetime.now(zone)

    @property
    def cors_origins(self) -> list[str]:
        """Return the full list of allowed CORS origins."""

        origins: list[str] = []

        if self.frontend_origin:
            origins.append(str(self.frontend_origin).rstrip("/"))
        else:
            origins.extend([
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            ])

        for origin in self.additional_origins:
            origins.append(str(origin).rstrip("/"))

        # Deduplicate while preserving order
        seen: set[str] = set()
        unique: list[str] = []
        for origin in origins:
            if origin not in seen:
                seen.add(origin)
                unique.append(origin)

        return unique


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
