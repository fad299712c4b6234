"""Configuration module for the privgate backend.

Provides centralized configuration management with type-safe enums.

Usage:
    from privgate.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from privgate.core.config.enums import Environment
from privgate.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "settings",
]

# Singleton settings instance
settings = Settings()
