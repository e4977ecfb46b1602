"""Configuration module for the playground backend."""

from playground.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
