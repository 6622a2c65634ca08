"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Courier Dispatch Planner API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for local state files.")
    preferences_file: Path = Field(
        default=Path("data/preferences.json"),
        description="Key-value file remembering operator preferences such as the last selected store.",
    )
    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    # Distance Matrix configuration
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Google Distance Matrix service.",
    )
    distance_matrix_url: str = Field(
        default="https://maps.googleapis.com/maps/api/distancematrix/json",
        description="Distance Matrix JSON endpoint.",
    )
    distance_region: str = Field(default="in", description="Region bias sent with every lookup.")
    address_country: Optional[str] = Field(
        default="India",
        description="Country appended to addresses that do not already mention it.",
    )
    distance_timeout_seconds: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Request timeout for distance lookups. Unset means wait indefinitely.",
    )
    distance_max_destinations_per_request: int = Field(
        default=25,
        ge=1,
        description="Destinations sent in one Distance Matrix request; the service rejects more than 25.",
    )

    # Schedule estimation
    stale_base_time_minutes: int = Field(default=5, ge=0)
    max_future_base_time_days: int = Field(default=3, ge=0)
    prior_order_buffer_seconds: int = Field(default=10, ge=0)
    inter_stop_buffer_seconds: int = Field(default=30, ge=0)
    default_leg_minutes: int = Field(default=30, ge=0)
    max_leg_minutes: int = Field(default=1440, ge=1)
    reached_handoff_minutes: int = Field(default=10, ge=0)
    on_the_way_handoff_minutes: int = Field(default=15, ge=0)
    accepted_handoff_minutes: int = Field(default=30, ge=0)

    # Planning sessions
    session_idle_ttl_minutes: int = Field(
        default=60,
        ge=1,
        description="Planning sessions untouched for this long are dropped from memory.",
    )

    # Order records
    default_order_amount: float = Field(default=20.0, ge=0.0)

    @field_validator("data_root", "preferences_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> tuple[str, ...]:
        """Accept DISPATCH_FRONTEND_ALLOWED_ORIGINS as a JSON array or a comma-separated list."""
        if isinstance(value, str):
            text = value.strip()
            try:
                value = json.loads(text) if text.startswith("[") else text.split(",")
            except json.JSONDecodeError:
                value = text.strip("[]").split(",")
        if isinstance(value, (list, tuple)):
            return tuple(str(item).strip().strip('"') for item in value if str(item).strip())
        return tuple()


settings = Settings()
