"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
The calculation core never reads these settings directly: callers turn them into a
CalculationConfig (see money.py) and pass it explicitly with each call.
"""

from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Loan calculation engine configuration"""

    # Monetary rounding
    money_precision: int = 2  # Decimal places for returned money values
    rounding_mode: str = "ROUND_NEAREST"  # ROUND_UP, ROUND_DOWN or ROUND_NEAREST

    # Significant digits used for intermediate decimal arithmetic
    decimal_precision: int = 28

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "LOAN_ENGINE_"
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = EngineSettings()


def get_settings() -> EngineSettings:
    """Get global settings instance"""
    return settings


def reload_settings() -> EngineSettings:
    """Reload settings from environment"""
    global settings
    settings = EngineSettings()
    return settings
