"""
Session lifecycle: login, refresh, revoke and credential changes.

Refresh token states::

    ACTIVE --revoke--> REVOKED   (terminal)
    ACTIVE --clock---> EXPIRED   (terminal, derived, never written)

Two behaviours are deliberate and worth knowing about:

- Refresh does not rotate the refresh token. A stolen refresh token keeps
  minting access tokens until it expires or is revoked, and two concurrent
  refreshes with the same token both succeed.
- Changing credentials does not revoke existing refresh tokens. Call
  ``revoke_all`` explicitly if that is wanted.
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from models.base_model import utcnow
from models.stores import RefreshTokenRecord, RefreshTokenStore, UserRecord, UserStore
from utils.credentials import ApiKey, BearerToken, extract_credential
from utils.errors import (
    Expired,
    InvalidCredentials,
    MalformedCredential,
    NotFound,
    Revoked,
    Unauthorized,
)
from utils.security import DEFAULT_ISSUER, AccessTokenCodec, PasswordHasher, generate_refresh_token

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=60)


class RefreshTokenState(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionConfig:
    """Everything the session core needs, passed in rather than read globally."""

    jwt_secret: str
    api_key: str = ""
    issuer: str = DEFAULT_ISSUER
    algorithm: str = "HS256"
    leeway_seconds: float = 0
    access_token_ttl: timedelta = ACCESS_TOKEN_TTL
    refresh_token_ttl: timedelta = REFRESH_TOKEN_TTL

    def __post_init__(self):
        if not self.jwt_secret:
            raise ValueError("jwt_secret must be set")

    def __repr__(self):
        return f"SessionConfig(issuer={self.issuer!r}, algorithm={self.algorithm!r})"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "SessionConfig":
        """Build from a Flask config (or any mapping with the same keys)."""
        return cls(
            jwt_secret=config["JWT_SECRET"],
            api_key=config.get("API_KEY", ""),
            issuer=config.get("ACCESS_TOKEN_ISSUER", DEFAULT_ISSUER),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            leeway_seconds=float(config.get("JWT_LEEWAY_SECONDS", 0)),
            access_token_ttl=config.get("ACCESS_TOKEN_TTL", ACCESS_TOKEN_TTL),
            refresh_token_ttl=config.get("REFRESH_TOKEN_TTL", REFRESH_TOKEN_TTL),
        )


@dataclass(frozen=True)
class TokenPair:
    user: UserRecord
    access_token: str
    refresh_token: str


class SessionManager:
    def __init__(
        self,
        config: SessionConfig,
        users: UserStore,
        refresh_tokens: RefreshTokenStore,
        hasher: Optional[PasswordHasher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.users = users
        self.refresh_tokens = refresh_tokens
        self.hasher = hasher or PasswordHasher()
        self.codec = AccessTokenCodec(
            issuer=config.issuer, algorithm=config.algorithm, leeway=config.leeway_seconds
        )
        self.clock = clock

    # ------------------------------------------------------------------ #
    # tokens
    # ------------------------------------------------------------------ #

    def mint_access_token(self, user_id: str) -> str:
        return self.codec.mint(user_id, self.config.jwt_secret, self.config.access_token_ttl)

    def validate_access_token(self, token: str) -> str:
        return self.codec.validate(token, self.config.jwt_secret)

    def state_of(self, record: RefreshTokenRecord, now: Optional[datetime] = None) -> RefreshTokenState:
        now = now or self.clock()
        if record.revoked_at is not None:
            return RefreshTokenState.REVOKED
        if record.expires_at <= now:
            return RefreshTokenState.EXPIRED
        return RefreshTokenState.ACTIVE

    def _issue_refresh_token(self, user_id: str) -> RefreshTokenRecord:
        now = self.clock()
        record = RefreshTokenRecord(
            token=generate_refresh_token(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.config.refresh_token_ttl,
        )
        self.refresh_tokens.add(record)
        return record

    # ------------------------------------------------------------------ #
    # operations
    # ------------------------------------------------------------------ #

    def create_account(self, email: str, plaintext: str) -> UserRecord:
        password_hash = self.hasher.hash(plaintext)
        user = self.users.create(email, password_hash)
        logger.info("user created id=%s", user.id)
        return user

    def login(self, email: str, plaintext: str) -> TokenPair:
        """
        Exchange email and password for an access/refresh token pair.

        Unknown email and wrong password raise the very same
        InvalidCredentials, and both cost one argon2 verification.
        """
        user = self.users.get_by_email(email)
        if user is None:
            self.hasher.burn(plaintext)
            logger.info("login rejected")
            raise InvalidCredentials()
        if not self.hasher.verify(user.password_hash, plaintext):
            logger.info("login rejected")
            raise InvalidCredentials()

        if self.hasher.needs_rehash(user.password_hash):
            self.users.update_password_hash(user.id, self.hasher.hash(plaintext))
            logger.info("password hash upgraded for user id=%s", user.id)

        access_token = self.mint_access_token(user.id)
        record = self._issue_refresh_token(user.id)
        logger.info("login ok user id=%s", user.id)
        return TokenPair(user=user, access_token=access_token, refresh_token=record.token)

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token for the owner of a live refresh token."""
        record = self.refresh_tokens.get(refresh_token)
        if record is None:
            raise NotFound("unknown refresh token")
        state = self.state_of(record)
        if state is RefreshTokenState.REVOKED:
            raise Revoked("refresh token revoked")
        if state is RefreshTokenState.EXPIRED:
            raise Expired("refresh token expired")
        return self.mint_access_token(record.user_id)

    def revoke(self, refresh_token: str) -> RefreshTokenRecord:
        """Revoke a refresh token. Revoking twice is a no-op success."""
        record = self.refresh_tokens.revoke(refresh_token, self.clock())
        if record is None:
            raise NotFound("unknown refresh token")
        logger.info("refresh token revoked for user id=%s", record.user_id)
        return record

    def revoke_all(self, user_id: str) -> int:
        count = self.refresh_tokens.revoke_all_for_user(user_id, self.clock())
        logger.info("revoked %d refresh tokens for user id=%s", count, user_id)
        return count

    def change_credentials(self, user_id: str, new_email: str, new_plaintext: str) -> UserRecord:
        """
        Replace email and password of an already authenticated user.

        Refresh tokens issued before the change stay valid.
        """
        password_hash = self.hasher.hash(new_plaintext)
        user = self.users.update_credentials(user_id, new_email, password_hash)
        logger.info("credentials changed for user id=%s", user_id)
        return user

    # ------------------------------------------------------------------ #
    # request guards
    # ------------------------------------------------------------------ #

    def bearer_token(self, headers: Mapping[str, str]) -> str:
        credential = extract_credential(headers)
        if not isinstance(credential, BearerToken):
            raise MalformedCredential("bearer credential required")
        return credential.value

    def authenticate(self, headers: Mapping[str, str]) -> str:
        """Return the user id proven by the request's bearer access token."""
        return self.validate_access_token(self.bearer_token(headers))

    def authorize_service(self, headers: Mapping[str, str]) -> None:
        credential = extract_credential(headers)
        if not isinstance(credential, ApiKey):
            raise MalformedCredential("api key credential required")
        expected = self.config.api_key
        if not expected or not hmac.compare_digest(credential.value.encode(), expected.encode()):
            raise Unauthorized("api key mismatch")
