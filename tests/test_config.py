"""Settings validation: durations parse at load time, bad values fail fast."""

import unittest
from datetime import timedelta

from pydantic import ValidationError

from dynasty_auth.core.config import Settings
from dynasty_auth.services.components import build_auth_components


def load(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDurations(unittest.TestCase):
    def test_defaults(self) -> None:
        s = load()
        self.assertEqual(s.JWT_EXPIRES_IN, timedelta(days=7))
        self.assertEqual(s.JWT_REFRESH_EXPIRES_IN, timedelta(days=30))

    def test_strings_are_parsed(self) -> None:
        s = load(JWT_EXPIRES_IN="15m", JWT_REFRESH_EXPIRES_IN="12h")
        self.assertEqual(s.JWT_EXPIRES_IN, timedelta(minutes=15))
        self.assertEqual(s.JWT_REFRESH_EXPIRES_IN, timedelta(hours=12))

    def test_malformed_duration_fails_at_load(self) -> None:
        for bad in ("7 days", "7w", "abc"):
            with self.subTest(value=bad):
                with self.assertRaises(ValidationError):
                    load(JWT_EXPIRES_IN=bad)

    def test_zero_duration_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            load(JWT_REFRESH_EXPIRES_IN="0d")


class TestSecretsAndUrls(unittest.TestCase):
    def test_short_secret_rejected_in_prod(self) -> None:
        with self.assertRaises(ValidationError):
            load(APP_ENV="prod", JWT_SECRET="short")

    def test_long_secret_accepted_in_prod(self) -> None:
        s = load(APP_ENV="prod", JWT_SECRET="x" * 32)
        self.assertEqual(s.JWT_SECRET.get_secret_value(), "x" * 32)

    def test_empty_secret_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            load(JWT_SECRET="   ")

    def test_database_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            load(DATABASE_URL="mysql://root@localhost/db")
        self.assertEqual(load(DATABASE_URL=" sqlite:// ").DATABASE_URL, "sqlite://")

    def test_blank_google_client_id_disables_google(self) -> None:
        self.assertIsNone(load(GOOGLE_CLIENT_ID="  ").GOOGLE_CLIENT_ID)

    def test_lockout_bounds(self) -> None:
        with self.assertRaises(ValidationError):
            load(LOGIN_MAX_FAILED_ATTEMPTS=0)
        with self.assertRaises(ValidationError):
            load(LOGIN_LOCKOUT_MINUTES=0)
        with self.assertRaises(ValidationError):
            load(BCRYPT_ROUNDS=3)


class TestBuildAuthComponents(unittest.TestCase):
    def test_wires_settings_through(self) -> None:
        components = build_auth_components(
            load(
                BCRYPT_ROUNDS=5,
                JWT_EXPIRES_IN="15m",
                LOGIN_MAX_FAILED_ATTEMPTS=3,
                LOGIN_LOCKOUT_MINUTES=10,
                OAUTH_LINK_BY_EMAIL=False,
            )
        )
        self.assertEqual(components.hasher.rounds, 5)
        self.assertEqual(components.tokens.access_ttl, timedelta(minutes=15))
        self.assertEqual(components.max_failed_attempts, 3)
        self.assertEqual(components.lockout_duration, timedelta(minutes=10))
        self.assertFalse(components.link_by_email)
        self.assertIsNone(components.verifier)
        self.assertEqual(components.rate_limiter.max_requests, 10)

    def test_rate_limit_settings(self) -> None:
        components = build_auth_components(
            load(AUTH_RATE_LIMIT_MAX_REQUESTS=3, AUTH_RATE_LIMIT_WINDOW_SEC=60)
        )
        self.assertEqual(components.rate_limiter.max_requests, 3)
        self.assertEqual(components.rate_limiter.window, timedelta(seconds=60))
        self.assertIsNone(build_auth_components(load(AUTH_RATE_LIMIT_ENABLED=False)).rate_limiter)
        with self.assertRaises(ValidationError):
            load(AUTH_RATE_LIMIT_MAX_REQUESTS=0)

    def test_google_verifier_only_with_client_id(self) -> None:
        components = build_auth_components(load(GOOGLE_CLIENT_ID="abc.apps.googleusercontent.com"))
        self.assertIsNotNone(components.verifier)
        self.assertEqual(components.google_client_id, "abc.apps.googleusercontent.com")


if __name__ == "__main__":
    unittest.main()
