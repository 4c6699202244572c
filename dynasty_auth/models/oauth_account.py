"""ORM model linking a user to an external identity provider subject."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from dynasty_auth.models.base import Base, TimestampMixin, new_id


class OAuthAccount(TimestampMixin, Base):
    """One row per (provider, provider_id); a user may hold one per provider."""

    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_oauth_accounts_provider_subject"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider = Column(String(32), nullable=False)
    provider_id = Column(String(255), nullable=False)
    # Cached provider tokens (optional; Google ID-token sign-in leaves them empty)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="oauth_accounts")
