"""Persistence layer."""

from dynasty_auth.repositories.auth import AuthRepository

__all__ = ["AuthRepository"]
