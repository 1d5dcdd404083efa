from __future__ import annotations

import json
import logging
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TIMELINE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_title: str = Field(default="Timeline Engine API", description="FastAPI application title")
    app_description: str = Field(
        default="Parses timeline documents into dated events and computes their layout.",
        description="OpenAPI description",
    )
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by CORS (comma separated or '*')",
    )
    log_level: str = Field(
        default="INFO",
        description="Application log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)",
    )
    enable_request_logging: bool = Field(
        default=True,
        description="Log one line per handled request",
    )
    max_input_characters: int = Field(
        default=200_000,
        description="Upper bound for the length of a submitted document",
        ge=1_000,
        le=5_000_000,
    )
    # --- parser ---
    default_lane: str = Field(
        default="Default",
        description="Lane assigned to events without a group:/lane: line",
    )
    event_categories: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["critical", "warning", "success", "meeting", "work"],
        description="Values accepted on class: lines; anything else is dropped",
    )
    # --- layout ---
    duration_min_height: float = Field(
        default=20.0,
        description="Duration connectors at or below this height (px) are not drawn",
        ge=0.0,
    )
    duration_bar_inset: float = Field(
        default=2.0,
        description="Pixels trimmed from the drawn duration bar so it stops short of the end marker",
        ge=0.0,
    )
    lane_anchor_offset: float = Field(
        default=29.0,
        description="Vertical offset (px) of the lane connector anchor inside an item",
        ge=0.0,
    )

    @field_validator("allowed_origins", "event_categories", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("["):
                return json.loads(raw)
            return [part.strip() for part in raw.split(",") if part.strip()]
        return value

    @field_validator("event_categories")
    @classmethod
    def _lowercase_categories(cls, value: List[str]) -> List[str]:
        return [category.lower() for category in value]

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        candidate = value.upper()
        if candidate not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            logging.getLogger("timeline_engine.settings").warning(
                "Unknown log level '%s', falling back to INFO.", value
            )
            return "INFO"
        return candidate


settings = Settings()
