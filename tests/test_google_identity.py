"""GoogleIdentityVerifier against a mocked tokeninfo endpoint (httpx.MockTransport)."""

import asyncio
import unittest

import httpx

from dynasty_auth.services.errors import AuthenticationError, IdentityProviderError
from dynasty_auth.services.google_identity import GoogleIdentityVerifier

CLIENT_ID = "client-123.apps.googleusercontent.com"


def tokeninfo(**overrides):
    payload = {
        "iss": "https://accounts.google.com",
        "aud": CLIENT_ID,
        "sub": "10987654321",
        "email": "bob@dynasty.dev",
        "email_verified": "true",
        "given_name": "Bob",
        "family_name": "Stone",
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}


def verifier_for(handler) -> GoogleIdentityVerifier:
    return GoogleIdentityVerifier(
        tokeninfo_url="https://google.test/tokeninfo",
        transport=httpx.MockTransport(handler),
    )


def run(verifier: GoogleIdentityVerifier, token: str = "id-token"):
    return asyncio.run(verifier.verify(token, CLIENT_ID))


class TestVerifySuccess(unittest.TestCase):
    def test_returns_identity(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["id_token"] = request.url.params.get("id_token")
            return httpx.Response(200, json=tokeninfo())

        result = run(verifier_for(handler), "abc.def.ghi")
        self.assertEqual(seen["id_token"], "abc.def.ghi")
        self.assertEqual(result.subject, "10987654321")
        self.assertEqual(result.email, "bob@dynasty.dev")
        self.assertTrue(result.email_verified)
        self.assertEqual((result.given_name, result.family_name), ("Bob", "Stone"))

    def test_unverified_email_is_reported_not_rejected(self) -> None:
        verifier = verifier_for(
            lambda request: httpx.Response(200, json=tokeninfo(email_verified="false"))
        )
        self.assertFalse(run(verifier).email_verified)

    def test_boolean_email_verified(self) -> None:
        verifier = verifier_for(
            lambda request: httpx.Response(200, json=tokeninfo(email_verified=True))
        )
        self.assertTrue(run(verifier).email_verified)

    def test_names_fall_back_to_full_name(self) -> None:
        verifier = verifier_for(
            lambda request: httpx.Response(
                200,
                json=tokeninfo(given_name=None, family_name=None, name="Ana Maria Lopez"),
            )
        )
        result = run(verifier)
        self.assertEqual((result.given_name, result.family_name), ("Ana", "Maria Lopez"))

    def test_bare_issuer_accepted(self) -> None:
        verifier = verifier_for(
            lambda request: httpx.Response(200, json=tokeninfo(iss="accounts.google.com"))
        )
        self.assertEqual(run(verifier).subject, "10987654321")


class TestVerifyRejected(unittest.TestCase):
    def assert_rejected(self, response: httpx.Response, reason: str) -> None:
        with self.assertRaises(AuthenticationError) as ctx:
            run(verifier_for(lambda request: response))
        self.assertEqual(ctx.exception.reason, reason)
        self.assertEqual(ctx.exception.message, "Invalid credentials.")

    def test_invalid_token(self) -> None:
        self.assert_rejected(
            httpx.Response(400, json={"error": "invalid_token"}), "invalid_id_token"
        )

    def test_wrong_audience(self) -> None:
        self.assert_rejected(
            httpx.Response(200, json=tokeninfo(aud="someone-else")), "audience_mismatch"
        )

    def test_wrong_issuer(self) -> None:
        self.assert_rejected(
            httpx.Response(200, json=tokeninfo(iss="https://evil.example")), "issuer_mismatch"
        )

    def test_missing_email(self) -> None:
        self.assert_rejected(httpx.Response(200, json=tokeninfo(email=None)), "missing_email")


class TestProviderUnavailable(unittest.TestCase):
    """Transport and server failures are not reported as bad credentials."""

    def test_server_error(self) -> None:
        with self.assertRaises(IdentityProviderError):
            run(verifier_for(lambda request: httpx.Response(503)))

    def test_non_json_body(self) -> None:
        with self.assertRaises(IdentityProviderError):
            run(verifier_for(lambda request: httpx.Response(200, text="<html>")))

    def test_unexpected_shape(self) -> None:
        with self.assertRaises(IdentityProviderError):
            run(verifier_for(lambda request: httpx.Response(200, json=["not", "a", "dict"])))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(IdentityProviderError) as ctx:
            run(verifier_for(handler))
        self.assertIsInstance(ctx.exception.cause, httpx.ConnectError)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaises(IdentityProviderError) as ctx:
            run(verifier_for(handler))
        self.assertIn("timed out", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
