"""Configuration settings for EquiLedger."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./equiledger.db", validation_alias="DATABASE_URL"
    )

    # LLM providers
    llm_provider: Literal["openai", "claude"] = Field(
        default="openai", validation_alias="LLM_PROVIDER"
    )
    openai_api_key: SecretStr = Field(default=SecretStr(""), validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""), validation_alias="ANTHROPIC_API_KEY"
    )
    claude_model: str = Field(default="claude-haiku-4-5", validation_alias="CLAUDE_MODEL")
    llm_max_tokens: int = Field(default=500, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.7, validation_alias="LLM_TEMPERATURE")

    # Twilio (WhatsApp)
    twilio_account_sid: str = Field(default="", validation_alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: SecretStr = Field(
        default=SecretStr(""), validation_alias="TWILIO_AUTH_TOKEN"
    )
    twilio_whatsapp_number: str = Field(default="", validation_alias="TWILIO_WHATSAPP_NUMBER")
    twilio_sms_number: str = Field(default="", validation_alias="TWILIO_SMS_NUMBER")
    twilio_api_url: str = Field(
        default="https://api.twilio.com", validation_alias="TWILIO_API_URL"
    )

    # Telegram
    telegram_bot_token: SecretStr = Field(
        default=SecretStr(""), validation_alias="TELEGRAM_BOT_TOKEN"
    )
    telegram_webhook_secret: SecretStr | None = Field(
        default=None, validation_alias="TELEGRAM_WEBHOOK_SECRET"
    )
    telegram_api_url: str = Field(
        default="https://api.telegram.org", validation_alias="TELEGRAM_API_URL"
    )

    # Outbound HTTP
    http_timeout: float = Field(default=15.0, validation_alias="HTTP_TIMEOUT")
    http_max_retries: int = Field(default=2, validation_alias="HTTP_MAX_RETRIES")

    # Application
    app_base_url: str = Field(default="http://localhost:3000", validation_alias="APP_BASE_URL")
    port: int = Field(default=3000, validation_alias="PORT")

    # Accounting defaults (South African VAT)
    default_vat_rate: Decimal = Field(default=Decimal("0.15"), validation_alias="DEFAULT_VAT_RATE")
    default_currency: str = Field(default="ZAR", validation_alias="DEFAULT_CURRENCY")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
