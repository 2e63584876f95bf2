# activity_service/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through), so no env_file is configured here.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_PROD: str = "postgresql+psycopg2://activity:activity@db:5432/activity_db"
    DATABASE_URL_LOCAL: str = "sqlite:///./activity_service.db"

    # --- Auth ---
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Enrollment ---
    RATE_LIMIT_ENABLED: bool = True
    ENROLL_RATE_LIMIT: str = "20/minute"
    # Attempts of the admission transaction before a write conflict surfaces
    ENROLL_MAX_ATTEMPTS: int = 3
    # Upper bound on waiting for another request holding the same activity
    ACTIVITY_LOCK_TIMEOUT_SECONDS: float = 10.0

    DEFAULT_CATEGORIES: list[str] = ["Lifestyle", "Fitness", "Table Tennis", "Basketball", "Football"]
    SEED_CATEGORIES_ON_STARTUP: bool = True

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
