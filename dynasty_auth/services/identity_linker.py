"""Reconcile an externally verified identity with local accounts: reuse, link or create."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import IntegrityError

from dynasty_auth.core.clock import utcnow
from dynasty_auth.models import User
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.services.errors import AuthenticationError, ConflictError
from dynasty_auth.services.google_identity import VerifiedIdentity

logger = logging.getLogger(__name__)


class LinkAction(str, Enum):
    EXISTING = "existing"
    LINKED = "linked"
    CREATED = "created"


@dataclass(frozen=True)
class LinkOutcome:
    user: User
    action: LinkAction


def ensure_can_authenticate(user: User) -> None:
    """Reject banned, suspended and soft-deleted users with the generic failure."""
    if user.deleted_at is not None:
        raise AuthenticationError(reason="account_deleted")
    if user.is_blocked:
        raise AuthenticationError(reason=f"account_{user.status.lower()}")


class IdentityLinker:
    """
    Resolve ``(provider, subject, email)`` to a local user, in order:

    1. unverified provider email -> rejected;
    2. known (provider, subject) -> its owner;
    3. local user with the same email -> new OAuth link to that user
       (only when ``link_by_email`` is on, otherwise ConflictError);
    4. otherwise a new, already email-verified user plus its link.

    Each call commits at most one of: nothing, one link, one user+link.
    """

    def __init__(
        self,
        repo: AuthRepository,
        *,
        link_by_email: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.link_by_email = link_by_email
        self._clock = clock

    def resolve(self, provider: str, identity: VerifiedIdentity) -> LinkOutcome:
        if not identity.email_verified:
            raise AuthenticationError(reason="provider_email_unverified")
        try:
            return self._resolve(provider, identity)
        except IntegrityError:
            # A concurrent first login inserted the same link or email; the
            # second pass finds that row instead of inserting again.
            self.repo.rollback()
            logger.info("Retrying identity resolution after concurrent insert: provider=%s", provider)
        try:
            return self._resolve(provider, identity)
        except IntegrityError:
            self.repo.rollback()
            raise AuthenticationError(reason="identity_conflict")

    def _resolve(self, provider: str, identity: VerifiedIdentity) -> LinkOutcome:
        account = self.repo.find_oauth_account(provider, identity.subject)
        if account is not None:
            ensure_can_authenticate(account.user)
            return LinkOutcome(user=account.user, action=LinkAction.EXISTING)

        existing = self.repo.find_user_by_email(identity.email)
        if existing is not None:
            ensure_can_authenticate(existing)
            if not self.link_by_email:
                raise ConflictError(
                    "An account with this email already exists. Sign in with your password first."
                )
            self.repo.link_oauth_account(existing.id, provider, identity.subject)
            self.repo.commit()
            logger.info(
                "OAuth identity linked to existing user: user_id=%s provider=%s",
                existing.id,
                provider,
            )
            return LinkOutcome(user=existing, action=LinkAction.LINKED)

        if self.repo.email_exists(identity.email):
            # Soft-deleted account still owns the address.
            raise AuthenticationError(reason="account_deleted")

        user = self.repo.create_oauth_user(
            email=identity.email,
            first_name=identity.given_name,
            last_name=identity.family_name,
            provider=provider,
            provider_id=identity.subject,
            verified_at=self._clock(),
        )
        self.repo.commit()
        logger.info("New user registered via %s: user_id=%s", provider, user.id)
        return LinkOutcome(user=user, action=LinkAction.CREATED)
