# =============================================================================
# Password Hashing
# =============================================================================
#
# PBKDF2-SHA256 with a per-password random salt, stored as "salt:hash".
# The iteration count is the cost factor (PASSWORD_HASH_ITERATIONS).
#
# =============================================================================

import hashlib
import secrets

from marketplace.core.errors import ValidationError


class PasswordHasher:
    """One-way hash and verify for local credentials."""

    def __init__(self, iterations: int = 100_000):
        if iterations < 1:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    def _derive(self, password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            iterations=self.iterations,
        ).hex()

    def hash(self, password: str) -> str:
        """
        Hash a password.

        Returns: salt:hash format string
        """
        if not isinstance(password, str) or not password:
            raise ValidationError("Password must be a non-empty string")
        salt = secrets.token_hex(32)
        return f"{salt}:{self._derive(password, salt)}"

    def verify(self, password: str, password_hash: str | None) -> bool:
        """Verify a password against its hash."""
        try:
            salt, stored_hash = password_hash.split(":")
            return secrets.compare_digest(self._derive(password, salt), stored_hash)
        except (ValueError, AttributeError):
            return False
