from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://baseline:baseline@db:5432/baseline"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # --- Baseline engine ---
    # IANA zone used to assign samples to calendar days.
    BASELINE_TIMEZONE: str = "UTC"
    BASELINE_HALF_LIFE_DAYS: float = 15.0
    BASELINE_MIN_DAYS: int = 14
    BASELINE_MAX_WINDOW_DAYS: int = 60
    BASELINE_CONFOUND_WINDOW_DAYS: int = 30
    BASELINE_RECALC_INTERVAL_DAYS: int = 30
    # 1 = strictly sequential batch.
    BASELINE_MAX_WORKERS: int = 4
    # Let batch runs also pick up users with samples but no baseline row yet.
    BASELINE_INCLUDE_COLD_START: bool = False

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
