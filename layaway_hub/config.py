"""Configuration management using Pydantic Settings"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./layaway.db"
    sqlite_busy_timeout_seconds: float = 15.0

    # Service
    service_name: str = "layaway-hub"
    log_level: str = "INFO"

    # Financing defaults (served until an administrator saves a configuration)
    default_interest_rate_percent: int = 5
    default_allowed_categories: List[str] = ["phone"]
    min_interest_rate_percent: int = 0
    max_interest_rate_percent: int = 40

    # Layaway terms
    allowed_plan_months: List[int] = [3, 6, 12]
    reject_cooldown_days: int = 5
    cancel_cooldown_days: int = 3
    refund_service_charge_percent: int = 15
    late_penalty_basis_points_per_month: int = 50  # 0.5% of the balance
    trust_star_cap: int = 5

    # Delivery notification
    messaging_link_base: str = "https://wa.me"
    phone_country_code: str = "234"
    phone_national_prefix: str = "0"
    currency_symbol: str = "₦"
    notification_webhook_url: Optional[str] = None

    # HTTP Client
    http_timeout_seconds: float = 5.0


settings = Settings()
