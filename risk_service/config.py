"""Configuration settings for the Risk Scoring Service."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service identification
    service_name: str = "risk-scoring-service"
    environment: str = "development"

    # Storage backend: "memory" keeps everything in process, "sql" uses SQLAlchemy
    ledger_backend: str = "memory"
    database_url: str = "sqlite://"

    # Load the demo customers and transactions on startup
    seed_demo_data: bool = True

    # Risk scoring configuration
    # Only transactions from the trailing window count towards the score
    analysis_window_days: int = 30

    # Hour-of-day for the night activity rule is read in this zone
    local_timezone: str = "UTC"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
