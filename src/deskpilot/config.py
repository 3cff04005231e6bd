"""Configuration settings for DeskPilot."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or overrides."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, populate_by_name=True, frozen=True
    )

    anthropic_api_key: str | None = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1/messages", validation_alias="ANTHROPIC_BASE_URL"
    )
    anthropic_version: str = Field(default="2023-06-01", validation_alias="ANTHROPIC_VERSION")
    model: str = Field(default="claude-sonnet-4-20250514", validation_alias="DESKPILOT_MODEL")
    max_tokens: int = Field(default=4096, ge=1, validation_alias="DESKPILOT_MAX_TOKENS")
    timeout_seconds: int = Field(default=60, ge=1, validation_alias="DESKPILOT_TIMEOUT_SECONDS")

    max_iterations: int = Field(default=35, ge=1, validation_alias="DESKPILOT_MAX_ITERATIONS")
    action_delay_seconds: float = Field(
        default=0.5, ge=0, validation_alias="DESKPILOT_ACTION_DELAY_SECONDS"
    )
    observation_delay_seconds: float = Field(
        default=0.5, ge=0, validation_alias="DESKPILOT_OBSERVATION_DELAY_SECONDS"
    )
    history_limit: int = Field(default=10, ge=1, validation_alias="DESKPILOT_HISTORY_LIMIT")

    image_quality_levels: list[int] = Field(
        default_factory=lambda: [85, 70, 55, 40, 30],
        validation_alias="DESKPILOT_IMAGE_QUALITY_LEVELS",
    )
    image_scale_factors: list[float] = Field(
        default_factory=lambda: [0.75, 0.5, 0.4, 0.3],
        validation_alias="DESKPILOT_IMAGE_SCALE_FACTORS",
    )
    image_fallback_quality: int = Field(
        default=50, ge=1, le=100, validation_alias="DESKPILOT_IMAGE_FALLBACK_QUALITY"
    )
    max_image_bytes: int = Field(
        default=4_500_000, ge=1, validation_alias="DESKPILOT_MAX_IMAGE_BYTES"
    )

    click_hold_seconds: float = Field(default=0.2, ge=0, validation_alias="DESKPILOT_CLICK_HOLD_SECONDS")
    type_interval_seconds: float = Field(
        default=0.05, ge=0, validation_alias="DESKPILOT_TYPE_INTERVAL_SECONDS"
    )
    double_click_interval_seconds: float = Field(
        default=0.1, ge=0, validation_alias="DESKPILOT_DOUBLE_CLICK_INTERVAL_SECONDS"
    )
    app_launch_wait_seconds: float = Field(
        default=0.5, ge=0, validation_alias="DESKPILOT_APP_LAUNCH_WAIT_SECONDS"
    )

    trace_dir: str | None = Field(default=None, validation_alias="DESKPILOT_TRACE_DIR")

    @field_validator("image_quality_levels")
    @classmethod
    def _check_quality_levels(cls, value: list[int]) -> list[int]:
        if not value:
            raise ValueError("image_quality_levels must not be empty")
        if any(level < 1 or level > 100 for level in value):
            raise ValueError("image quality levels must be between 1 and 100")
        if any(later >= earlier for earlier, later in zip(value, value[1:])):
            raise ValueError("image quality levels must be strictly descending")
        return value

    @field_validator("image_scale_factors")
    @classmethod
    def _check_scale_factors(cls, value: list[float]) -> list[float]:
        if any(factor <= 0 or factor >= 1 for factor in value):
            raise ValueError("image scale factors must be between 0 and 1 (exclusive)")
        if any(later >= earlier for earlier, later in zip(value, value[1:])):
            raise ValueError("image scale factors must be strictly descending")
        return value


class Configuration:
    """Holder for the settings snapshot shared by every component.

    Components keep a reference to the holder and read ``current`` when a
    phase starts. ``update`` swaps in a new validated snapshot, so a change
    made while a session runs only affects phases that start afterwards.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()

    @property
    def current(self) -> Settings:
        return self._settings

    def update(self, **changes: Any) -> Settings:
        data: dict[str, Any] = self._settings.model_dump()
        data.update(changes)
        self._settings = Settings(**data)
        return self._settings
