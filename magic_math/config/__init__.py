"""Configuration module."""

from magic_math.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
