"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TOR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Timetable Optimisation Recommendations"
    data_root: Path = Field(default=Path("data"), description="Root directory for datasets and outputs.")
    dataset_file: Path = Field(
        default=Path("data/network.json"),
        description="JSON dataset with stops, services, scheduled and historic visits.",
    )
    log_level: str = Field(default="INFO")

    slack_dominance: float = Field(default=1.0, gt=0.0, description="Upper bound of standardised slack blame.")
    cohesion_dominance: float = Field(default=1.0, gt=0.0, description="Upper bound of standardised cohesion blame.")
    route_segment_minimum: int = Field(
        default=3,
        ge=2,
        description="Minimum number of consecutive shared stops for a route segment.",
    )
    tabu_tenure: int = Field(default=10, ge=1)
    neighbourhood_size: int = Field(default=20, ge=1)
    candidate_list_size: int = Field(default=8, ge=1)
    iteration_limit: int = Field(default=50, ge=1)
    drop_off_min_minutes: int = Field(default=20, ge=1)
    drop_off_max_minutes: int = Field(default=45, ge=1)
    max_fetch_workers: int = Field(default=3, ge=1, description="Concurrent requests against the data provider.")
    max_chain_workers: int = Field(default=3, ge=1, description="Concurrent running board evaluations.")
    random_seed: Optional[int] = Field(default=None, description="Seed for reproducible searches.")

    @field_validator("data_root", "dataset_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: Any) -> str:
        return str(value).strip().upper() or "INFO"


settings = Settings()
