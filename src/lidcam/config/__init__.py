"""Configuration management for lidcam.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for the Telegram credentials.
"""

from lidcam.config.settings import Settings, load_settings, save_settings

__all__ = ["Settings", "load_settings", "save_settings"]
