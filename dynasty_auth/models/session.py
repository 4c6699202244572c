"""ORM model for server-side sessions backing refresh tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, String

from dynasty_auth.models.base import Base, TimestampMixin, new_id


class UserSession(TimestampMixin, Base):
    """
    One issued refresh token. The token itself is never stored, only its
    SHA-256 hex digest, so a database leak does not yield usable tokens.
    """

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash = Column(String(64), nullable=False, unique=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
