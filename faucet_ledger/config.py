"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class FaucetConfig(BaseSettings):
    """Faucet ledger deployment configuration"""

    model_config = SettingsConfigDict(
        env_prefix="FAUCET_",
        env_file=".env",
        case_sensitive=False
    )

    # Ledger parameters
    max_withdrawal: int = 1000
    min_window: int = 24 * 60 * 60  # 24 hours in seconds
    administrator: str = "owner"
    initial_funding: int = 0  # Deposited by the administrator at deploy time

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Feature flags
    enable_audit_logging: bool = True
    enable_events: bool = True

    @field_validator("max_withdrawal")
    @classmethod
    def check_max_withdrawal(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_withdrawal must be positive")
        return v

    @field_validator("min_window", "initial_funding")
    @classmethod
    def check_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value cannot be negative")
        return v

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v


# Global configuration instance
config = FaucetConfig()


def get_config() -> FaucetConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> FaucetConfig:
    """Reload configuration from environment"""
    global config
    config = FaucetConfig()
    return config
