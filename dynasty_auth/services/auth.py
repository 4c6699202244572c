"""
Authentication flows: register, password login, Google login, refresh, logout.

AuthService composes the password hasher, lockout guard, token issuer,
session registry and identity linker. Every collaborator is passed in; the
service holds no process-wide state of its own.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from dynasty_auth.core.clock import utcnow
from dynasty_auth.core.security import PasswordHasher
from dynasty_auth.core.tokens import REFRESH_TOKEN_TYPE, TokenIssuer
from dynasty_auth.models import User
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.schemas.auth import AuthResult, RefreshResult, RegisterRequest, SafeUser
from dynasty_auth.services.errors import (
    AuthenticationError,
    ConflictError,
    IdentityProviderNotConfiguredError,
    TokenExpiredError,
    UnauthorizedError,
)
from dynasty_auth.services.google_identity import IdentityVerifier
from dynasty_auth.services.identity_linker import IdentityLinker, ensure_can_authenticate
from dynasty_auth.services.lockout import LOCKOUT_MINUTES, MAX_FAILED_ATTEMPTS, LockoutGuard
from dynasty_auth.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "An account with this email already exists"


class AuthService:
    """One instance per request/DB session; cheap to construct."""

    def __init__(
        self,
        repo: AuthRepository,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        verifier: IdentityVerifier | None = None,
        google_client_id: str | None = None,
        max_failed_attempts: int = MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = timedelta(minutes=LOCKOUT_MINUTES),
        link_by_email: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.hasher = hasher
        self.tokens = tokens
        self.verifier = verifier
        self.google_client_id = google_client_id
        self._clock = clock
        self.lockout = LockoutGuard(
            repo,
            max_attempts=max_failed_attempts,
            lockout_duration=lockout_duration,
            clock=clock,
        )
        self.sessions = SessionRegistry(repo, clock=clock)
        self.linker = IdentityLinker(repo, link_by_email=link_by_email, clock=clock)

    # ---------------------------- Register ----------------------------

    def register(
        self,
        data: RegisterRequest,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """
        Create a PENDING_VERIFICATION user with a password credential and sign it in.

        The refresh token gets a session like any login, so it can be used
        for refresh and revoked on logout.
        """
        if self.repo.email_exists(data.email):
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        password_hash = self.hasher.hash_password(data.password)
        try:
            user = self.repo.create_user_with_password(
                email=data.email,
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                password_hash=password_hash,
            )
            result = self._issue(user, ip_address, user_agent)
        except IntegrityError as e:
            self.repo.rollback()
            raise ConflictError(EMAIL_TAKEN_MESSAGE) from e

        logger.info("New user registered: user_id=%s", result.user.id)
        return result

    # ---------------------------- Password login ----------------------------

    def login(
        self,
        email: str,
        password: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        user = self.repo.find_user_by_email_with_credentials(email)
        if user is None or user.credential is None:
            self.hasher.burn_verification(password)
            raise AuthenticationError(reason="unknown_email_or_no_password")

        ensure_can_authenticate(user)
        self.lockout.ensure_open(user.credential)

        if not self.hasher.verify_password(password, user.credential.password_hash):
            raise self.lockout.register_failure(user.id)

        if not self.lockout.register_success(user.id):
            user = self._recheck_lock(user.id)

        result = self._issue(user, ip_address, user_agent, record_login=True)
        logger.info("User logged in: user_id=%s", result.user.id)
        return result

    def _recheck_lock(self, user_id: str) -> User:
        """
        The success reset was skipped because a concurrent failure locked the
        credential after our check. Re-read it and retry the reset once; a
        lock that is still (or again) active rejects the login.
        """
        self.repo.rollback()
        fresh = self.repo.find_user_by_id_with_credentials(user_id)
        if fresh is None or fresh.credential is None:
            raise AuthenticationError(reason="account_vanished")
        self.lockout.ensure_open(fresh.credential)
        if self.lockout.register_success(user_id):
            return fresh

        self.repo.rollback()
        locked = self.repo.find_user_by_id_with_credentials(user_id)
        locked_until = locked.credential.locked_until if locked and locked.credential else None
        logger.warning("Login rejected after concurrent lock: user_id=%s", user_id)
        raise self.lockout.locked_error(locked_until)

    # ---------------------------- Federated login ----------------------------

    async def login_with_google(
        self,
        id_token: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        if self.verifier is None or not self.google_client_id:
            raise IdentityProviderNotConfiguredError("Google sign-in is not configured.")

        identity = await self.verifier.verify(id_token, self.google_client_id)
        outcome = self.linker.resolve(self.verifier.provider, identity)

        result = self._issue(outcome.user, ip_address, user_agent, record_login=True)
        logger.info(
            "User authenticated via %s: user_id=%s action=%s",
            self.verifier.provider,
            result.user.id,
            outcome.action.value,
        )
        return result

    # ---------------------------- Refresh ----------------------------

    def refresh(self, refresh_token: str) -> RefreshResult:
        """
        Mint a new access token from a live refresh session. The refresh
        token itself is not rotated.
        """
        try:
            claims = self.tokens.verify(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        except TokenExpiredError:
            self.sessions.delete(refresh_token)
            raise

        session = self.sessions.require_live(refresh_token)
        if session.user_id != claims.subject:
            logger.warning("Refresh token subject does not match its session")
            raise UnauthorizedError("Session has been revoked")

        user = self.repo.find_user_by_id(claims.subject)
        if user is None:
            self.sessions.delete(refresh_token)
            raise UnauthorizedError("User not found")
        if user.is_blocked:
            logger.warning("Refresh rejected for inactive user: user_id=%s", user.id)
            self.sessions.delete(refresh_token)
            raise AuthenticationError(reason="account_inactive")

        access_token = self.tokens.create_access_token(user.id, user.email, user.role)
        return RefreshResult(access_token=access_token, user=SafeUser.model_validate(user))

    # ---------------------------- Logout ----------------------------

    def logout(self, refresh_token: str) -> None:
        """Revoke the session behind a refresh token. Always succeeds."""
        deleted = self.sessions.delete(refresh_token)
        logger.debug("Session invalidated: existed=%s", deleted)

    def logout_all(self, user_id: str) -> int:
        count = self.sessions.delete_all_for_user(user_id)
        logger.info("All sessions revoked: user_id=%s sessions=%s", user_id, count)
        return count

    # ---------------------------- Current user ----------------------------

    def get_me(self, user_id: str) -> SafeUser:
        user = self.repo.find_user_by_id(user_id)
        if user is None:
            raise UnauthorizedError("User not found")
        return SafeUser.model_validate(user)

    # ---------------------------- Internals ----------------------------

    def _issue(
        self,
        user: User,
        ip_address: str | None,
        user_agent: str | None,
        *,
        record_login: bool = False,
    ) -> AuthResult:
        """Mint a token pair, persist its refresh session and commit the flow."""
        if record_login:
            self.repo.update_last_login(user.id, ip_address, self._clock())
        pair = self.tokens.create_token_pair(user.id, user.email, user.role)
        self.sessions.create(
            user.id,
            pair.refresh_token,
            self.tokens.refresh_expiry(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.repo.commit()
        return AuthResult(
            user=SafeUser.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )
