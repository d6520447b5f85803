"""Core module for Scribe Chat configuration and utilities."""

from scribe_chat.core.config import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
