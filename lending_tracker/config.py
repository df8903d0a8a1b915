"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LendingConfig(BaseSettings):
    """Lending tracker configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LENDING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "lending_tracker.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_workers: int = 1
    cors_origins: str = "*"  # Comma separated

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Notification configuration
    notifications_enabled: bool = True
    notification_channel: str = "log"  # log, email or webhook
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    mail_sender_name: str = "Loan Service"
    mail_sender_address: Optional[str] = None  # Defaults to smtp_username
    webhook_url: str = ""
    webhook_timeout: float = 5.0

    # Display configuration
    currency_symbol: str = "₹"
    display_precision: int = 2  # Decimal places shown for amounts

    @property
    def cors_origin_list(self) -> list:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global configuration instance
config = LendingConfig()


def get_config() -> LendingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingConfig:
    """Reload configuration from environment"""
    global config
    config = LendingConfig()
    return config
