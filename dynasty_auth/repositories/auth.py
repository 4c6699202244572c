"""
Data access for users, credentials, OAuth links and sessions.

Methods never commit: the caller decides the transaction boundary, which is
what makes User+Credential and User+OAuthAccount creation all-or-nothing.
Lookups that authenticate ignore soft-deleted users.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session, joinedload

from dynasty_auth.models import (
    OAuthAccount,
    User,
    UserCredential,
    UserRole,
    UserSession,
    UserStatus,
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def token_digest(token: str) -> str:
    """SHA-256 hex digest under which a refresh token's session is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthRepository:
    """Persistence contract consumed by the identity and session services."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ---------------------------- Transactions ----------------------------

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # ---------------------------- User lookups ----------------------------

    def find_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(
            User.email == normalize_email(email),
            User.deleted_at.is_(None),
        )
        return self.session.execute(stmt).scalars().first()

    def email_exists(self, email: str) -> bool:
        """True when the email is taken, including by a soft-deleted account."""
        stmt = select(User.id).where(User.email == normalize_email(email))
        return self.session.execute(stmt).first() is not None

    def find_user_by_id(self, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id, User.deleted_at.is_(None))
        return self.session.execute(stmt).scalars().first()

    def find_user_by_email_with_credentials(self, email: str) -> User | None:
        stmt = (
            select(User)
            .options(joinedload(User.credential))
            .where(User.email == normalize_email(email), User.deleted_at.is_(None))
        )
        return self.session.execute(stmt).scalars().first()

    def find_user_by_id_with_credentials(self, user_id: str) -> User | None:
        stmt = (
            select(User)
            .options(joinedload(User.credential))
            .where(User.id == user_id, User.deleted_at.is_(None))
        )
        return self.session.execute(stmt).scalars().first()

    # ---------------------------- User creation ----------------------------

    def create_user_with_password(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        password_hash: str,
        role: UserRole = UserRole.TRADER,
        status: UserStatus = UserStatus.PENDING_VERIFICATION,
        email_verified: bool = False,
        email_verified_at: datetime | None = None,
    ) -> User:
        user = User(
            email=normalize_email(email),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            status=status.value,
            email_verified=email_verified,
            email_verified_at=email_verified_at,
        )
        user.credential = UserCredential(password_hash=password_hash)
        self.session.add(user)
        self.session.flush()
        return user

    def create_oauth_user(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        provider: str,
        provider_id: str,
        verified_at: datetime,
        role: UserRole = UserRole.TRADER,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> User:
        """New user whose email the provider already verified, plus its OAuth link."""
        user = User(
            email=normalize_email(email),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            status=status.value,
            email_verified=True,
            email_verified_at=verified_at,
        )
        user.oauth_accounts.append(OAuthAccount(provider=provider, provider_id=provider_id))
        self.session.add(user)
        self.session.flush()
        return user

    # ---------------------------- OAuth links ----------------------------

    def find_oauth_account(self, provider: str, provider_id: str) -> OAuthAccount | None:
        stmt = (
            select(OAuthAccount)
            .options(joinedload(OAuthAccount.user))
            .where(
                OAuthAccount.provider == provider,
                OAuthAccount.provider_id == provider_id,
            )
        )
        return self.session.execute(stmt).scalars().first()

    def link_oauth_account(
        self,
        user_id: str,
        provider: str,
        provider_id: str,
        *,
        access_token: str | None = None,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
    ) -> OAuthAccount:
        account = OAuthAccount(
            user_id=user_id,
            provider=provider,
            provider_id=provider_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )
        self.session.add(account)
        self.session.flush()
        return account

    # ---------------------------- Sessions ----------------------------

    def create_session(
        self,
        *,
        user_id: str,
        token: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSession:
        row = UserSession(
            user_id=user_id,
            token_hash=token_digest(token),
            ip_address=ip_address,
            user_agent=user_agent[:512] if user_agent else None,
            expires_at=expires_at,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def find_session_by_token(self, token: str) -> UserSession | None:
        stmt = select(UserSession).where(UserSession.token_hash == token_digest(token))
        return self.session.execute(stmt).scalars().first()

    def delete_session(self, token: str) -> bool:
        """Delete the session for a token. Returns False (not an error) when already gone."""
        result = self.session.execute(
            delete(UserSession)
            .where(UserSession.token_hash == token_digest(token))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def delete_user_sessions(self, user_id: str) -> int:
        result = self.session.execute(
            delete(UserSession)
            .where(UserSession.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_expired_sessions(self, now: datetime) -> int:
        result = self.session.execute(
            delete(UserSession)
            .where(UserSession.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ---------------------------- Login bookkeeping ----------------------------

    def update_last_login(self, user_id: str, ip_address: str | None, now: datetime) -> None:
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_login_at=now, last_login_ip=ip_address)
            .execution_options(synchronize_session=False)
        )

    def increment_failed_attempts(self, user_id: str) -> int | None:
        """
        Atomically add one failed attempt and return the post-increment count.

        A single UPDATE ... RETURNING, so concurrent failures each observe a
        distinct count. Returns None when the user has no credential row.
        """
        stmt = (
            update(UserCredential)
            .where(UserCredential.user_id == user_id)
            .values(failed_attempts=UserCredential.failed_attempts + 1)
            .returning(UserCredential.failed_attempts)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def reset_failed_attempts(self, user_id: str, now: datetime) -> bool:
        """
        Zero the counter and clear the lock window.

        Skipped when a lock is active at ``now`` so a success racing with the
        failure that just locked the account cannot undo that lock.
        """
        result = self.session.execute(
            update(UserCredential)
            .where(
                UserCredential.user_id == user_id,
                or_(
                    UserCredential.locked_until.is_(None),
                    UserCredential.locked_until <= now,
                ),
            )
            .values(failed_attempts=0, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def lock_credentials(self, user_id: str, until: datetime) -> None:
        self.session.execute(
            update(UserCredential)
            .where(UserCredential.user_id == user_id)
            .values(locked_until=until)
            .execution_options(synchronize_session=False)
        )
