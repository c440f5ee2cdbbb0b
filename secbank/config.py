"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class SecbankConfig(BaseSettings):
    """SecBank core ledger configuration"""

    # Database configuration
    database_url: str = "sqlite:///secbank.db"  # memory:// for ephemeral storage

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Reference numbers
    reference_prefix: str = "TXN"
    reference_timezone: str = "UTC"  # Calendar used for the daily sequence

    # Business rules configuration
    interbank_max_amount: str = "50000.00"  # Instapay per-transaction ceiling
    account_number_max_attempts: int = 100
    lock_timeout_seconds: float = 10.0

    # Payment switch configuration
    switch_url: str = ""  # Empty = mock gateway
    switch_timeout: float = 5.0
    switch_api_key: str = ""

    # Startup
    seed_default_branches: bool = True

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    class Config:
        env_prefix = "SECBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = SecbankConfig()


def get_config() -> SecbankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SecbankConfig:
    """Reload configuration from environment"""
    global config
    config = SecbankConfig()
    return config
