"""Token and password helpers, registered as the ``security`` service."""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 390000


class Security:
    def __init__(self, iterations: int = PBKDF2_ITERATIONS) -> None:
        self.iterations = iterations

    @staticmethod
    def token(nbytes: int = 32) -> str:
        """URL-safe random token."""
        return secrets.token_urlsafe(nbytes)

    @staticmethod
    def compare(a: str, b: str) -> bool:
        """Constant-time string comparison."""
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))

    def hash_password(self, password: str, salt: Optional[str] = None) -> str:
        """Return ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
        salt = salt or secrets.token_hex(16)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), self.iterations)
        encoded = base64.b64encode(digest).decode("ascii").strip()
        return f"{PBKDF2_ALGORITHM}${self.iterations}${salt}${encoded}"

    def verify_password(self, password: str, encoded: str) -> bool:
        try:
            algorithm, iterations, salt, _ = encoded.split("$", 3)
        except ValueError:
            return False
        if algorithm != PBKDF2_ALGORITHM or not iterations.isdigit():
            return False
        candidate = Security(int(iterations)).hash_password(password, salt)
        return self.compare(candidate, encoded)
