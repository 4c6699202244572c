"""SQLAlchemy ORM models."""

from dynasty_auth.models.base import Base
from dynasty_auth.models.oauth_account import OAuthAccount
from dynasty_auth.models.session import UserSession
from dynasty_auth.models.user import User, UserCredential, UserRole, UserStatus

__all__ = [
    "Base",
    "OAuthAccount",
    "User",
    "UserCredential",
    "UserRole",
    "UserSession",
    "UserStatus",
]
