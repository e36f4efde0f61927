"""One-way hashing for passwords and refresh tokens at rest."""
import base64
import hashlib

import bcrypt


class CredentialHasher:
    """Salted bcrypt hash/verify shared by passwords and refresh tokens.

    Values are SHA-256 digested before bcrypt so inputs longer than bcrypt's
    72-byte limit (every signed token) are compared in full.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _prepare(plaintext: str) -> bytes:
        digest = hashlib.sha256(plaintext.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext value."""
        return bcrypt.hashpw(
            self._prepare(plaintext),
            bcrypt.gensalt(rounds=self.rounds),
        ).decode("utf-8")

    def verify(self, plaintext: str, hashed_value: str | None) -> bool:
        """Verify a plaintext value against its hash."""
        if not plaintext or not hashed_value:
            return False
        try:
            return bcrypt.checkpw(self._prepare(plaintext), hashed_value.encode("utf-8"))
        except ValueError:
            # Malformed or foreign hash format
            return False
