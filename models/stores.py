"""
Persistence contracts used by the session core, with SQLAlchemy and
in-memory implementations.

The session core only sees the frozen records below, never ORM instances,
so it can run against either store.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional, Protocol

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.base_model import _uuid_str, as_utc, utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.user import User
from utils.errors import Conflict, NotFound, StoreFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    password_hash: str
    is_premium: bool
    created_at: datetime
    updated_at: datetime

    def __repr__(self):
        # keep the hash out of logs and tracebacks
        return f"UserRecord(id={self.id!r}, is_premium={self.is_premium!r})"


@dataclass(frozen=True)
class RefreshTokenRecord:
    token: str
    user_id: str
    created_at: datetime
    expires_at: datetime
    revoked_at: Optional[datetime] = None

    def __repr__(self):
        return (
            f"RefreshTokenRecord(user_id={self.user_id!r}, expires_at={self.expires_at!r}, "
            f"revoked_at={self.revoked_at!r})"
        )


class UserStore(Protocol):
    def get(self, user_id: str) -> Optional[UserRecord]:
        """Fetch a user by id."""

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        """Fetch a user by (normalized) email."""

    def create(self, email: str, password_hash: str) -> UserRecord:
        """Insert a user. Raises Conflict when the email is taken."""

    def update_credentials(self, user_id: str, email: str, password_hash: str) -> UserRecord:
        """Replace email and hash. Raises NotFound or Conflict."""

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """Replace only the hash (argon2 parameter upgrades)."""


class RefreshTokenStore(Protocol):
    """
    Durable table of issued refresh tokens.

    Every read must reflect every committed revoke; implementations may not
    cache liveness.
    """

    def add(self, record: RefreshTokenRecord) -> None:
        """Persist a freshly issued token before it is handed out."""

    def get(self, token: str) -> Optional[RefreshTokenRecord]:
        """Current snapshot of a token, or None."""

    def revoke(self, token: str, at: datetime) -> Optional[RefreshTokenRecord]:
        """
        Set ``revoked_at`` if it is still null and return the record.

        An already revoked record is returned unchanged; None if unknown.
        """

    def revoke_all_for_user(self, user_id: str, at: datetime) -> int:
        """Revoke every not yet revoked token of a user; return how many."""


# --------------------------------------------------------------------------- #
# SQLAlchemy
# --------------------------------------------------------------------------- #


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        email=user.email,
        password_hash=user.password_hash,
        is_premium=bool(user.is_premium),
        created_at=as_utc(user.created_at),
        updated_at=as_utc(user.updated_at),
    )


def _token_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        token=row.token,
        user_id=row.user_id,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        revoked_at=as_utc(row.revoked_at),
    )


class SqlUserStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def get(self, user_id: str) -> Optional[UserRecord]:
        try:
            user = self.storage.get(User, user_id)
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("user lookup failed") from exc
        return _user_record(user) if user else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        session = self.storage.get_session()
        try:
            user = (
                session.query(User)
                .filter(func.lower(User.email) == email.strip().lower())
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("user lookup failed") from exc
        return _user_record(user) if user else None

    def create(self, email: str, password_hash: str) -> UserRecord:
        user = User(email=email, password_hash=password_hash, is_premium=False)
        try:
            self.storage.new(user)
            self.storage.save()
        except IntegrityError as exc:
            raise Conflict("email already registered") from exc
        except SQLAlchemyError as exc:
            raise StoreFailure("user insert failed") from exc
        return _user_record(user)

    def update_credentials(self, user_id: str, email: str, password_hash: str) -> UserRecord:
        try:
            user = self.storage.get(User, user_id)
            if user is None:
                raise NotFound("user vanished")
            user.email = email
            user.password_hash = password_hash
            self.storage.save()
        except IntegrityError as exc:
            raise Conflict("email already registered") from exc
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("user update failed") from exc
        return _user_record(user)

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        session = self.storage.get_session()
        try:
            session.execute(update(User).where(User.id == user_id).values(password_hash=password_hash))
            self.storage.save()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("password hash update failed") from exc


class SqlRefreshTokenStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def add(self, record: RefreshTokenRecord) -> None:
        row = RefreshToken(
            token=record.token,
            user_id=record.user_id,
            created_at=record.created_at,
            updated_at=record.created_at,
            expires_at=record.expires_at,
        )
        try:
            self.storage.new(row)
            self.storage.save()
        except SQLAlchemyError as exc:
            # includes a primary key collision, which 256 random bits make theoretical
            raise StoreFailure("refresh token insert failed") from exc

    def get(self, token: str) -> Optional[RefreshTokenRecord]:
        try:
            row = self.storage.get(RefreshToken, token)
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("refresh token lookup failed") from exc
        return _token_record(row) if row else None

    def revoke(self, token: str, at: datetime) -> Optional[RefreshTokenRecord]:
        session = self.storage.get_session()
        try:
            # conditional update keeps the first revocation time under races
            session.execute(
                update(RefreshToken)
                .where(RefreshToken.token == token, RefreshToken.revoked_at.is_(None))
                .values(revoked_at=at, updated_at=at)
            )
            self.storage.save()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("refresh token revoke failed") from exc
        return self.get(token)

    def revoke_all_for_user(self, user_id: str, at: datetime) -> int:
        session = self.storage.get_session()
        try:
            result = session.execute(
                update(RefreshToken)
                .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
                .values(revoked_at=at, updated_at=at)
            )
            self.storage.save()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreFailure("refresh token bulk revoke failed") from exc
        return result.rowcount


# --------------------------------------------------------------------------- #
# In-memory (tests, single-process tooling)
# --------------------------------------------------------------------------- #


class InMemoryUserStore:
    def __init__(self) -> None:
        self._by_id: Dict[str, UserRecord] = {}
        self._lock = threading.Lock()

    def _email_taken(self, email: str, except_id: Optional[str] = None) -> bool:
        return any(u.email.lower() == email.lower() and u.id != except_id for u in self._by_id.values())

    def get(self, user_id: str) -> Optional[UserRecord]:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = email.strip().lower()
        with self._lock:
            users = list(self._by_id.values())
        for user in users:
            if user.email.lower() == wanted:
                return user
        return None

    def create(self, email: str, password_hash: str) -> UserRecord:
        with self._lock:
            if self._email_taken(email):
                raise Conflict("email already registered")
            now = utcnow()
            user = UserRecord(_uuid_str(), email, password_hash, False, now, now)
            self._by_id[user.id] = user
            return user

    def update_credentials(self, user_id: str, email: str, password_hash: str) -> UserRecord:
        with self._lock:
            user = self._by_id.get(user_id)
            if user is None:
                raise NotFound("user vanished")
            if self._email_taken(email, except_id=user_id):
                raise Conflict("email already registered")
            user = replace(user, email=email, password_hash=password_hash, updated_at=utcnow())
            self._by_id[user_id] = user
            return user

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        with self._lock:
            user = self._by_id.get(user_id)
            if user is not None:
                self._by_id[user_id] = replace(user, password_hash=password_hash)


class InMemoryRefreshTokenStore:
    """
    Dict-backed refresh token table.

    .. note::
       A threading lock gives revoke the same first-writer-wins behaviour as
       the conditional UPDATE in SqlRefreshTokenStore.
    """

    def __init__(self) -> None:
        self._by_token: Dict[str, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            if record.token in self._by_token:
                raise StoreFailure("duplicate refresh token")
            self._by_token[record.token] = record

    def get(self, token: str) -> Optional[RefreshTokenRecord]:
        return self._by_token.get(token)

    def revoke(self, token: str, at: datetime) -> Optional[RefreshTokenRecord]:
        with self._lock:
            record = self._by_token.get(token)
            if record is None:
                return None
            if record.revoked_at is None:
                record = replace(record, revoked_at=at)
                self._by_token[token] = record
            return record

    def revoke_all_for_user(self, user_id: str, at: datetime) -> int:
        with self._lock:
            count = 0
            for token, record in list(self._by_token.items()):
                if record.user_id == user_id and record.revoked_at is None:
                    self._by_token[token] = replace(record, revoked_at=at)
                    count += 1
            return count

    def for_user(self, user_id: str):
        return [r for r in self._by_token.values() if r.user_id == user_id]
