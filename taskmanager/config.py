from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, populate_by_name=True)

    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="", alias="LOG_LEVEL")
    log_file: str = Field(default="", alias="LOG_FILE")

    database_url: str = Field(default="sqlite+aiosqlite:///./data/tasks.db", alias="DATABASE_URL")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    access_token_secret: str = Field(default="dev-access-secret-change-me", alias="ACCESS_TOKEN_SECRET")
    refresh_token_secret: str = Field(default="dev-refresh-secret-change-me", alias="REFRESH_TOKEN_SECRET")
    access_token_ttl_minutes: int = Field(default=15, alias="ACCESS_TOKEN_TTL_MINUTES")
    refresh_token_ttl_days: int = Field(default=3, alias="REFRESH_TOKEN_TTL_DAYS")
    refresh_cookie_max_age_sec: int = Field(default=24 * 60 * 60, alias="REFRESH_COOKIE_MAX_AGE_SEC")

    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str = Field(default="", alias="SMTP_USER")
    smtp_password: str = Field(default="", alias="SMTP_PASSWORD")
    smtp_starttls: bool = Field(default=True, alias="SMTP_STARTTLS")
    email_from_name: str = Field(default="Task Manager", alias="EMAIL_FROM_NAME")
    email_timeout_sec: int = Field(default=20, alias="EMAIL_TIMEOUT_SEC")

    cron_schedule: str = Field(default="0 * * * *", alias="CRON_SCHEDULE")
    delete_after_email: bool = Field(default=True, alias="DELETE_AFTER_EMAIL")
    cron_max_retries: int = Field(default=3, alias="CRON_MAX_RETRIES")
    run_cron_on_startup: bool = Field(default=False, alias="RUN_CRON_ON_STARTUP")
    cron_retry_base_delay_sec: float = Field(default=1.0, alias="CRON_RETRY_BASE_DELAY_SEC")
    due_lookback_minutes: int = Field(default=60, alias="DUE_LOOKBACK_MINUTES")
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "INFO" if self.is_production else "DEBUG"


settings = Settings()
