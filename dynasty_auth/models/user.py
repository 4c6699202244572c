"""ORM models for application users and their password credentials."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from dynasty_auth.models.base import Base, TimestampMixin, new_id


class UserRole(str, Enum):
    TRADER = "TRADER"
    SUPPORT = "SUPPORT"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    BANNED = "BANNED"


# Statuses that may not authenticate or refresh.
BLOCKED_STATUSES = frozenset({UserStatus.SUSPENDED.value, UserStatus.BANNED.value})


class User(TimestampMixin, Base):
    """
    Identity record. Email is stored lower-cased and is unique.

    Never hard-deleted: ``deleted_at`` marks a soft delete, after which the
    account can no longer sign in but its email stays reserved.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(32), nullable=False, default=UserRole.TRADER.value)
    status = Column(
        String(32), nullable=False, default=UserStatus.PENDING_VERIFICATION.value
    )
    email_verified = Column(Boolean, nullable=False, default=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    last_login_ip = Column(String(64), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    credential = relationship(
        "UserCredential",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    oauth_accounts = relationship(
        "OAuthAccount",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_blocked(self) -> bool:
        return self.status in BLOCKED_STATUSES


class UserCredential(TimestampMixin, Base):
    """
    Password credential (at most one per user) plus brute-force lockout state.

    failed_attempts is only ever changed through single UPDATE statements in
    the repository so concurrent failures cannot lose increments.
    """

    __tablename__ = "user_credentials"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    password_hash = Column(String(255), nullable=False)
    failed_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    password_changed_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="credential")
