"""Password hashing and verification (bcrypt)."""

from functools import cached_property

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Input validation bounds for registration and login.
EMAIL_MAX_LEN = 255
NAME_MIN_LEN = 1
NAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# bcrypt only looks at the first 72 bytes of input.
_BCRYPT_MAX_BYTES = 72


def _encode(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted adaptive hashing with a configurable cost factor. Holds no per-user state."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    def hash_password(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        return bcrypt.hashpw(
            _encode(plain_password), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify_password(self, plain_password: str, hashed: str | None) -> bool:
        """Verify a plain password against a stored hash. Malformed hashes never match."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(_encode(plain_password), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    @cached_property
    def _dummy_hash(self) -> str:
        return self.hash_password("dummy-password-for-timing")

    def burn_verification(self, plain_password: str) -> None:
        """Spend one comparison's worth of time when there is no hash to check against."""
        self.verify_password(plain_password, self._dummy_hash)
