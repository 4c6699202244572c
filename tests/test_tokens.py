"""Unit tests for TokenIssuer: claims round trip, expiry vs invalid, token types."""

import unittest
from datetime import timedelta

import jwt

from dynasty_auth.core.clock import utcnow
from dynasty_auth.core.tokens import TokenIssuer
from dynasty_auth.services.errors import AuthErrorKind, InvalidTokenError, TokenExpiredError

from db_support import TEST_SECRET, FrozenClock


class TestTokenRoundTrip(unittest.TestCase):
    """A freshly minted token verifies back to the same claims."""

    def setUp(self) -> None:
        self.issuer = TokenIssuer(TEST_SECRET)

    def test_access_claims(self) -> None:
        token = self.issuer.create_access_token("user-1", "alice@x.com", "TRADER")
        claims = self.issuer.verify(token)
        self.assertEqual(
            (claims.subject, claims.email, claims.role, claims.type),
            ("user-1", "alice@x.com", "TRADER", "access"),
        )

    def test_refresh_claims(self) -> None:
        token = self.issuer.create_refresh_token("user-1", "alice@x.com", "ADMIN")
        claims = self.issuer.verify(token, expected_type="refresh")
        self.assertEqual(claims.type, "refresh")
        self.assertEqual(claims.role, "ADMIN")

    def test_lifetimes(self) -> None:
        issuer = TokenIssuer(
            TEST_SECRET, access_ttl=timedelta(minutes=15), refresh_ttl=timedelta(days=30)
        )
        pair = issuer.create_token_pair("u", "u@x.com", "TRADER")
        access = issuer.verify(pair.access_token)
        refresh = issuer.verify(pair.refresh_token)
        self.assertEqual(access.expires_at - access.issued_at, timedelta(minutes=15))
        self.assertEqual(refresh.expires_at - refresh.issued_at, timedelta(days=30))

    def test_tokens_minted_together_are_distinct(self) -> None:
        first = self.issuer.create_refresh_token("u", "u@x.com", "TRADER")
        second = self.issuer.create_refresh_token("u", "u@x.com", "TRADER")
        self.assertNotEqual(first, second)

    def test_empty_secret_rejected(self) -> None:
        with self.assertRaises(ValueError):
            TokenIssuer("")


class TestTokenFailures(unittest.TestCase):
    """Expired and invalid tokens raise distinct errors."""

    def setUp(self) -> None:
        self.issuer = TokenIssuer(TEST_SECRET)
        past = FrozenClock(utcnow() - timedelta(days=40))
        self.past_issuer = TokenIssuer(TEST_SECRET, clock=past)

    def test_expired_token(self) -> None:
        token = self.past_issuer.create_refresh_token("u", "u@x.com", "TRADER")
        with self.assertRaises(TokenExpiredError) as ctx:
            self.issuer.verify(token, expected_type="refresh")
        self.assertEqual(ctx.exception.kind, AuthErrorKind.TOKEN_EXPIRED)

    def test_wrong_type_wins_over_expiry(self) -> None:
        token = self.past_issuer.create_access_token("u", "u@x.com", "TRADER")
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify(token, expected_type="refresh")

    def test_wrong_type(self) -> None:
        token = self.issuer.create_access_token("u", "u@x.com", "TRADER")
        with self.assertRaises(InvalidTokenError) as ctx:
            self.issuer.verify(token, expected_type="refresh")
        self.assertEqual(ctx.exception.kind, AuthErrorKind.INVALID_TOKEN)

    def test_wrong_secret(self) -> None:
        token = TokenIssuer("another-secret").create_access_token("u", "u@x.com", "TRADER")
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify(token)

    def test_expired_token_with_wrong_secret_is_invalid(self) -> None:
        token = TokenIssuer(
            "another-secret", clock=FrozenClock(utcnow() - timedelta(days=40))
        ).create_refresh_token("u", "u@x.com", "TRADER")
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify(token, expected_type="refresh")

    def test_garbage(self) -> None:
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify("not.a.jwt")

    def test_missing_type_claim(self) -> None:
        now = utcnow()
        token = jwt.encode(
            {
                "sub": "u",
                "email": "u@x.com",
                "role": "TRADER",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "jti": "x",
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify(token)

    def test_unknown_type_claim(self) -> None:
        now = utcnow()
        token = jwt.encode(
            {
                "sub": "u",
                "email": "u@x.com",
                "role": "TRADER",
                "type": "password-reset",
                "iat": now,
                "exp": now + timedelta(minutes=5),
                "jti": "x",
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.issuer.verify(token)


if __name__ == "__main__":
    unittest.main()
