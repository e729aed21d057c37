"""Application configuration."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    # Application Settings
    app_name: str = "Policy Pulse - medication coverage change tracking"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Settings
    api_v1_prefix: str = "/api/v1"
    host: str = "0.0.0.0"
    port: int = 8000

    # Text reconstruction
    line_y_tolerance: float = Field(
        default=2.0,
        description="Maximum baseline distance for two fragments to share a line",
    )
    pdf_x_tolerance: float = Field(
        default=3.0,
        description="pdfplumber x_tolerance used when grouping characters into words",
    )
    pdf_y_tolerance: float = Field(
        default=3.0,
        description="pdfplumber y_tolerance used when grouping characters into words",
    )

    # Document diff defaults
    unified_context_lines: int = Field(default=3, ge=0)
    inline_max_equal_chunk_lines: int = Field(default=6, ge=1)

    # Coverage matching
    fuzzy_match_threshold: float = Field(
        default=90.0,
        ge=0.0,
        le=100.0,
        description="rapidfuzz token_set_ratio needed for a fuzzy medication match in cost computation",
    )

    # Recommendations
    recommendation_top_k: int = Field(default=5, ge=1)

    # Collaborator seed data
    seed_data_path: Optional[Path] = Field(
        default=None,
        description="JSON file with {'policies': [...], 'users': [...]} used by the in-memory directories",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings: Application settings loaded from environment
    """
    return Settings()


# Global settings instance
settings = get_settings()
