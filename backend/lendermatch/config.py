"""Engine configuration using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings with environment variable support."""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Underwriting runs
    UNDERWRITING_MAX_WORKERS: int = Field(default=8, ge=1)
    UNDERWRITING_MAX_CONCURRENT_RUNS: int = Field(default=4, ge=1)
    UNDERWRITING_CANCEL_POLL_SECONDS: float = Field(default=0.05, gt=0)
    # Finished runs kept per application; the oldest are dropped first
    UNDERWRITING_RUN_HISTORY_LIMIT: int = Field(default=50, ge=1)

    # Unknown custom rule names are treated as met unless strict mode is on
    STRICT_CUSTOM_RULES: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def worker_count(self, lender_count: int) -> int:
        """Size of the lender worker pool for a catalog of the given size."""
        return max(1, min(self.UNDERWRITING_MAX_WORKERS, lender_count))


# Global settings instance
settings = Settings()
