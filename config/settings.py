"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Every tunable of the inventory metrics engine can be overridden per deployment.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # API SECURITY
    # ===================
    api_key: Optional[str] = Field(
        None,
        description="API key required in X-API-Key for admin endpoints"
    )

    # ===================
    # INVENTORY METRICS
    # ===================
    metrics_lookback_weeks: int = Field(
        default=4,
        ge=1,
        le=104,
        description="Trailing window of order history used for sales velocity"
    )
    metrics_lead_time_days: int = Field(
        default=7,
        ge=0,
        le=365,
        description="Supplier lead time used for reorder points"
    )
    metrics_safety_factor: float = Field(
        default=1.0,
        ge=0,
        le=10,
        description="Multiplier applied to reorder point and recommended stock"
    )
    metrics_slow_percentile: float = Field(
        default=0.25,
        ge=0,
        le=1,
        description="Percentile of non-zero weekly rates for the slow threshold"
    )
    metrics_fast_percentile: float = Field(
        default=0.75,
        ge=0,
        le=1,
        description="Percentile of non-zero weekly rates for the fast threshold"
    )
    metrics_recompute_timeout_seconds: int = Field(
        default=300,
        ge=1,
        le=3600,
        description="Wall-clock limit for a single recompute run"
    )
    low_stock_threshold: int = Field(
        default=5,
        ge=0,
        description="Current stock strictly below this is flagged as low stock"
    )

    # ===================
    # WEEKLY REPORT
    # ===================
    scheduler_enabled: bool = Field(
        default=True,
        description="Start the weekly report scheduler with the application"
    )
    inventory_report_cron: str = Field(
        default="0 2 * * sat",
        description="Crontab for the weekly report; APScheduler counts weekday numbers from Monday, so use day names"
    )
    inventory_report_timezone: str = Field(
        default="UTC",
        description="Timezone the report crontab is evaluated in"
    )

    # ===================
    # EMAIL
    # ===================
    smtp_host: Optional[str] = Field(None, description="SMTP server host")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_username: Optional[str] = Field(None, description="SMTP login")
    smtp_password: Optional[str] = Field(None, description="SMTP password")
    smtp_use_ssl: bool = Field(
        default=False,
        description="Use implicit SSL instead of STARTTLS"
    )
    email_from: Optional[str] = Field(
        None,
        description="Sender address (defaults to smtp_username)"
    )
    admin_email: Optional[str] = Field(
        None,
        description="Recipient of the weekly inventory report"
    )

    # ===================
    # TELEGRAM
    # ===================
    telegram_bot_token: Optional[str] = Field(
        None,
        description="Telegram bot token from @BotFather"
    )
    telegram_chat_id: Optional[str] = Field(
        None,
        description="Telegram chat ID for report summaries"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    @model_validator(mode="after")
    def check_percentile_order(self) -> "Settings":
        """Slow percentile may not exceed the fast percentile."""
        if self.metrics_slow_percentile > self.metrics_fast_percentile:
            raise ValueError(
                "metrics_slow_percentile must be <= metrics_fast_percentile"
            )
        return self

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def email_configured(self) -> bool:
        """Check if SMTP delivery is properly configured."""
        return bool(self.smtp_host and self.admin_email and (self.email_from or self.smtp_username))

    @property
    def telegram_configured(self) -> bool:
        """Check if Telegram is properly configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
