from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Monety Ledger API"
    debug: bool = True
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    database_url: str = "sqlite:///./monety.db"
    redis_url: str = "redis://localhost:6379/0"

    secret_key: str = "change-this-secret-key"
    access_token_expire_minutes: int = 60 * 24
    log_level: str = "INFO"

    ledger_timezone: str = "America/Sao_Paulo"
    withdrawal_window_start_hour: int = 9
    withdrawal_window_end_hour: int = 17
    withdrawal_min_amount: float = 35.0
    withdrawal_fee_rate: float = 0.10
    deposit_min_amount: float = 30.0
    invite_code_length: int = 8
    invite_base_url: str = "https://monety.app/reg"

    payment_gateway_url: str = ""
    payment_gateway_timeout_seconds: float = 10.0
    payment_webhook_secret: str = "change-this-webhook-secret"

    record_lock_use_redis: bool = True
    record_lock_timeout_seconds: int = 10
    # Must outlast the slowest operation run under the lock, gateway call included.
    record_lock_ttl_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
