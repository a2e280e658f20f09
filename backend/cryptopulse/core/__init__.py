"""Core configuration and logging."""

from cryptopulse.core.config import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
