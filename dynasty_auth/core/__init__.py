"""Core app configuration, security primitives and database."""

from dynasty_auth.core.config import get_settings, settings

__all__ = ["get_settings", "settings"]
