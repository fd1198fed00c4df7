from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://vitalstudy:vitalstudy@db:5432/vitalstudy"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # Analytics windows (days)
    DEFAULT_TIME_RANGE_DAYS: int = 30
    MAX_TIME_RANGE_DAYS: int = 365
    GOAL_LOOKBACK_DAYS: int = 30
    GOAL_TREND_DAYS: int = 7
    GOAL_STREAK_DAYS: int = 30
    RECENT_ACHIEVEMENT_DAYS: int = 30

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
