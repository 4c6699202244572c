"""Google ID-token verification through Google's tokeninfo endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from dynasty_auth.services.errors import AuthenticationError, IdentityProviderError

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class VerifiedIdentity:
    """What the core consumes from an identity provider once it vouched for an assertion."""

    subject: str
    email: str
    email_verified: bool
    given_name: str = ""
    family_name: str = ""


class IdentityVerifier(Protocol):
    provider: str

    async def verify(self, assertion: str, audience: str) -> VerifiedIdentity: ...


def _as_bool(value: Any) -> bool:
    # tokeninfo returns "true"/"false" strings; decoded JWT payloads carry real booleans.
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _split_names(data: dict[str, Any]) -> tuple[str, str]:
    given = (data.get("given_name") or "").strip()
    family = (data.get("family_name") or "").strip()
    if given or family:
        return given, family
    parts = (data.get("name") or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


class GoogleIdentityVerifier:
    """
    Asks Google to validate an ID token and returns its identity claims.

    Signature and expiry are checked by Google; this class only checks the
    audience and issuer of the answer. Connectivity problems raise
    IdentityProviderError, a rejected token raises AuthenticationError.
    """

    provider = GOOGLE_PROVIDER

    def __init__(
        self,
        *,
        tokeninfo_url: str = GOOGLE_TOKENINFO_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.tokeninfo_url = tokeninfo_url
        self.timeout = timeout
        self._transport = transport

    async def verify(self, assertion: str, audience: str) -> VerifiedIdentity:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                resp = await client.get(self.tokeninfo_url, params={"id_token": assertion})
        except httpx.TimeoutException as e:
            raise IdentityProviderError("Google token verification timed out.", e) from e
        except httpx.RequestError as e:
            raise IdentityProviderError("Google token endpoint unreachable.", e) from e

        if resp.status_code >= 500:
            raise IdentityProviderError(f"Google returned {resp.status_code}.")
        if resp.status_code >= 400:
            raise AuthenticationError(reason="invalid_id_token")

        try:
            data = resp.json()
        except ValueError as e:
            raise IdentityProviderError("Google returned a non-JSON response.", e) from e
        if not isinstance(data, dict):
            raise IdentityProviderError("Google returned an unexpected response shape.")

        if data.get("aud") != audience:
            logger.warning("Google ID token audience mismatch")
            raise AuthenticationError(reason="audience_mismatch")
        if data.get("iss") not in GOOGLE_ISSUERS:
            raise AuthenticationError(reason="issuer_mismatch")

        subject = data.get("sub")
        email = data.get("email")
        if not subject or not email:
            raise AuthenticationError(reason="missing_email")

        given_name, family_name = _split_names(data)
        return VerifiedIdentity(
            subject=str(subject),
            email=str(email),
            email_verified=_as_bool(data.get("email_verified")),
            given_name=given_name,
            family_name=family_name,
        )
