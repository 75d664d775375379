from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Scheduler service
    VINE_API_BASE_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL of the VINE backend"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="Path prefix in front of the scheduler endpoints"
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Transport timeout applied to every scheduler request"
    )

    # Scheduler defaults
    DEFAULT_INTERVAL_MINUTES: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Interval used when the scheduler is started without one"
    )
    HISTORY_PAGE_SIZE: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Initial page size of the job history table"
    )

    # Notifications
    NOTIFICATION_BACKLOG: int = Field(
        default=50,
        ge=1,
        description="Number of recent notifications kept for the console"
    )

    # Application Settings
    DEBUG: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


# Global settings instance
settings = Settings()
