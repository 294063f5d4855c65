"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token minting/validation via PyJWT (HS256)
- Opaque refresh token generation
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import argon2
import jwt
from argon2.exceptions import HashingError, VerificationError, VerifyMismatchError

from utils.errors import Expired, HashFailure, InvalidSignature, MalformedCredential

DEFAULT_ISSUER = "yapper"
REFRESH_TOKEN_BYTES = 32
PASSWORD_MAX_BYTES = 1024


class PasswordHasher:
    """Argon2id hashing with a hard input limit instead of silent truncation."""

    def __init__(
        self,
        time_cost: int = argon2.DEFAULT_TIME_COST,
        memory_cost: int = argon2.DEFAULT_MEMORY_COST,
        parallelism: int = argon2.DEFAULT_PARALLELISM,
        max_bytes: int = PASSWORD_MAX_BYTES,
    ):
        self._ph = argon2.PasswordHasher(
            time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism
        )
        self.max_bytes = max_bytes
        self._dummy_hash: str | None = None

    def _too_long(self, plaintext: str) -> bool:
        return len(plaintext.encode("utf-8")) > self.max_bytes

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password using Argon2
        """
        if self._too_long(plaintext):
            raise HashFailure(f"password longer than {self.max_bytes} bytes")
        try:
            return self._ph.hash(plaintext)
        except HashingError as exc:
            raise HashFailure(str(exc)) from exc

    def verify(self, password_hash: str, plaintext: str) -> bool:
        """Verify a plaintext password against a stored argon2 hash.

        A mismatch is ``False``; only a structurally broken hash raises.
        """
        if self._too_long(plaintext):
            # nothing this long was ever hashed; still pay for one verification
            self.burn(plaintext)
            return False
        try:
            return self._ph.verify(password_hash, plaintext)
        except VerifyMismatchError:
            return False
        except (ValueError, VerificationError) as exc:
            # InvalidHashError is a ValueError
            raise HashFailure(f"unusable password hash: {exc.__class__.__name__}") from exc

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self._ph.check_needs_rehash(password_hash)
        except ValueError as exc:
            raise HashFailure(f"unusable password hash: {exc.__class__.__name__}") from exc

    def burn(self, plaintext: str) -> None:
        """Spend one verification on a throwaway hash (unknown-user logins)."""
        if self._dummy_hash is None:
            self._dummy_hash = self._ph.hash(secrets.token_hex(16))
        try:
            self._ph.verify(self._dummy_hash, plaintext[: self.max_bytes])
        except VerificationError:
            pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AccessTokenCodec:
    """
    Short-lived, self-contained session tokens.

    Claims are exactly ``iss``, ``sub``, ``iat`` and ``exp``. Validation
    needs nothing but the shared secret, so there is no store round-trip and
    no way to revoke a token before ``exp``.
    """

    REQUIRED_CLAIMS = ["iss", "sub", "iat", "exp"]

    def __init__(self, issuer: str = DEFAULT_ISSUER, algorithm: str = "HS256", leeway: float = 0):
        self.issuer = issuer
        self.algorithm = algorithm
        self.leeway = leeway

    def mint(self, user_id: str, secret: str, ttl: timedelta) -> str:
        now = _now()
        payload = {
            "iss": self.issuer,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def validate(self, token: str, secret: str) -> str:
        """
        Return the subject of a valid token.

        Raises InvalidSignature (bad MAC, other secret, foreign issuer),
        Expired (``exp <= now``) or MalformedCredential (anything unparsable).
        """
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": self.REQUIRED_CLAIMS},
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignature("signature mismatch") from exc
        except jwt.ExpiredSignatureError as exc:
            raise Expired("access token expired") from exc
        except jwt.InvalidIssuerError as exc:
            raise InvalidSignature("untrusted issuer") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedCredential(f"unparsable access token: {exc}") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedCredential("access token has no subject")
        return subject


def generate_refresh_token() -> str:
    """256 bits from the OS CSPRNG, hex-encoded. Carries no claims."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)
