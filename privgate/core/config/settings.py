"""Application settings loaded from the environment."""

from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from privgate.core.config.enums import Environment


class Settings(BaseSettings):
    """Privgate settings.

    Every field can be overridden with an environment variable of the same name.
    ``DATABASE_URL`` takes precedence over the individual ``POSTGRES_*`` fields.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "privgate"
    ENVIRONMENT: Environment = Environment.LOCAL
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TESTING: bool = False

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "privgate"
    POSTGRES_PASSWORD: str = "privgate"
    POSTGRES_DB: str = "privgate"
    POSTGRES_SSLMODE: str = "prefer"
    DATABASE_URL: Optional[str] = None

    db_pool_size: int = Field(default=20, gt=0)
    db_pool_max_overflow: int = Field(default=40, ge=0)

    RUN_ALEMBIC_MIGRATIONS: bool = False

    # Ledger entries rolled per batch by the period reset sweep
    USAGE_PERIOD_RESET_BATCH_SIZE: int = Field(default=500, gt=0)

    @computed_field  # type: ignore[misc]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:  # noqa: N802
        """Async SQLAlchemy connection string."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_local(self) -> bool:
        """Whether the service runs on a developer machine."""
        return self.ENVIRONMENT == Environment.LOCAL
