from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import argon2
import jwt
import pytest

from models.stores import InMemoryRefreshTokenStore, InMemoryUserStore
from utils.errors import (
    Conflict,
    ErrorKind,
    Expired,
    HashFailure,
    InvalidCredentials,
    MalformedCredential,
    MissingCredential,
    NotFound,
    Revoked,
    Unauthorized,
)
from utils.security import PasswordHasher, generate_refresh_token
from utils.sessions import RefreshTokenState, SessionConfig, SessionManager


SECRET = "session-test-secret-0123456789abcdef0123"


@pytest.fixture()
def user(manager):
    return manager.create_account("a@x.com", "secret1")


# ------------------------------- login ------------------------------------ #
def test_login_returns_valid_access_token_and_persisted_refresh_token(manager, user):
    pair = manager.login("a@x.com", "secret1")

    assert pair.user.id == user.id
    assert pair.access_token
    assert manager.validate_access_token(pair.access_token) == user.id
    claims = jwt.decode(pair.access_token, manager.config.jwt_secret, algorithms=["HS256"], issuer="yapper")
    assert claims["exp"] - claims["iat"] == 3600

    record = manager.refresh_tokens.get(pair.refresh_token)
    assert record is not None
    assert record.user_id == user.id
    assert record.revoked_at is None
    assert record.expires_at - record.created_at == timedelta(days=60)
    assert manager.state_of(record) is RefreshTokenState.ACTIVE


def test_login_email_is_case_insensitive(manager, user):
    assert manager.login("A@X.com", "secret1").user.id == user.id


def test_wrong_password_and_unknown_email_are_indistinguishable(manager, user):
    with pytest.raises(InvalidCredentials) as wrong:
        manager.login("a@x.com", "wrong")
    with pytest.raises(InvalidCredentials) as unknown:
        manager.login("nouser@x.com", "anything")

    assert wrong.value.kind is unknown.value.kind is ErrorKind.INVALID_CREDENTIALS
    assert str(wrong.value) == str(unknown.value)
    assert wrong.value.detail == unknown.value.detail


def test_each_login_is_a_separate_session(manager, user):
    first = manager.login("a@x.com", "secret1")
    second = manager.login("a@x.com", "secret1")
    assert first.refresh_token != second.refresh_token
    assert len(manager.refresh_tokens.for_user(user.id)) == 2


def test_login_upgrades_outdated_hash(clock):
    weak = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
    strong = PasswordHasher(time_cost=2, memory_cost=8, parallelism=1)
    manager = SessionManager(
        SessionConfig(jwt_secret=SECRET),
        users=InMemoryUserStore(),
        refresh_tokens=InMemoryRefreshTokenStore(),
        hasher=weak,
        clock=clock,
    )
    user = manager.create_account("a@x.com", "secret1")
    manager.hasher = strong

    manager.login("a@x.com", "secret1")

    upgraded = manager.users.get(user.id).password_hash
    assert upgraded != user.password_hash
    assert strong.needs_rehash(upgraded) is False
    assert strong.verify(upgraded, "secret1")


# ------------------------------ refresh ----------------------------------- #
def test_refresh_mints_access_token_for_owner(manager, user):
    pair = manager.login("a@x.com", "secret1")
    assert manager.validate_access_token(manager.refresh(pair.refresh_token)) == user.id


def test_refresh_twice_both_succeed_without_rotation(manager, user):
    pair = manager.login("a@x.com", "secret1")
    first = manager.refresh(pair.refresh_token)
    second = manager.refresh(pair.refresh_token)

    assert manager.validate_access_token(first) == user.id
    assert manager.validate_access_token(second) == user.id
    # the stored record is untouched by refresh
    assert manager.refresh_tokens.get(pair.refresh_token).revoked_at is None


def test_concurrent_refresh_with_same_token_all_succeed(manager, user):
    pair = manager.login("a@x.com", "secret1")
    with ThreadPoolExecutor(max_workers=8) as pool:
        tokens = list(pool.map(lambda _: manager.refresh(pair.refresh_token), range(16)))
    assert all(manager.validate_access_token(t) == user.id for t in tokens)


def test_refresh_unknown_token_is_not_found(manager):
    with pytest.raises(NotFound):
        manager.refresh(generate_refresh_token())


def test_refresh_after_expiry(manager, user, clock):
    pair = manager.login("a@x.com", "secret1")
    clock.advance(days=60)
    with pytest.raises(Expired):
        manager.refresh(pair.refresh_token)
    assert manager.state_of(manager.refresh_tokens.get(pair.refresh_token)) is RefreshTokenState.EXPIRED


def test_refresh_just_before_expiry_still_works(manager, user, clock):
    pair = manager.login("a@x.com", "secret1")
    clock.advance(days=60, seconds=-1)
    assert manager.refresh(pair.refresh_token)


# ------------------------------- revoke ----------------------------------- #
def test_revoke_blocks_refresh_before_expiry(manager, user):
    pair = manager.login("a@x.com", "secret1")
    manager.revoke(pair.refresh_token)
    with pytest.raises(Revoked):
        manager.refresh(pair.refresh_token)


def test_revoke_is_idempotent_and_keeps_first_timestamp(manager, user, clock):
    pair = manager.login("a@x.com", "secret1")
    first = manager.revoke(pair.refresh_token)
    clock.advance(minutes=5)
    second = manager.revoke(pair.refresh_token)

    assert first.revoked_at == second.revoked_at == manager.refresh_tokens.get(pair.refresh_token).revoked_at


def test_revoked_wins_over_expired(manager, user, clock):
    pair = manager.login("a@x.com", "secret1")
    manager.revoke(pair.refresh_token)
    clock.advance(days=90)
    with pytest.raises(Revoked):
        manager.refresh(pair.refresh_token)


def test_revoke_unknown_token_is_not_found(manager):
    with pytest.raises(NotFound):
        manager.revoke("does-not-exist")


def test_revoke_only_touches_one_session(manager, user):
    first = manager.login("a@x.com", "secret1")
    second = manager.login("a@x.com", "secret1")
    manager.revoke(first.refresh_token)
    assert manager.refresh(second.refresh_token)


def test_revoke_all_revokes_every_active_session(manager, user):
    pairs = [manager.login("a@x.com", "secret1") for _ in range(3)]
    manager.revoke(pairs[0].refresh_token)

    assert manager.revoke_all(user.id) == 2
    for pair in pairs:
        with pytest.raises(Revoked):
            manager.refresh(pair.refresh_token)


# ------------------------- change credentials ------------------------------ #
def test_change_credentials_rehashes_and_keeps_sessions(manager, user):
    pair = manager.login("a@x.com", "secret1")

    updated = manager.change_credentials(user.id, "b@x.com", "secret2")

    assert updated.email == "b@x.com"
    assert updated.password_hash != user.password_hash
    assert manager.login("b@x.com", "secret2").user.id == user.id
    with pytest.raises(InvalidCredentials):
        manager.login("a@x.com", "secret1")
    # existing refresh tokens are not invalidated by a password change
    assert manager.refresh(pair.refresh_token)


def test_change_credentials_to_taken_email_conflicts(manager, user):
    other = manager.create_account("c@x.com", "secret3")
    with pytest.raises(Conflict):
        manager.change_credentials(other.id, "a@x.com", "secret3")


def test_change_credentials_with_unhashable_password(manager, user):
    with pytest.raises(HashFailure):
        manager.change_credentials(user.id, "a@x.com", "x" * 5000)


def test_create_account_duplicate_email(manager, user):
    with pytest.raises(Conflict):
        manager.create_account("a@x.com", "other")


# ------------------------------- guards ----------------------------------- #
def test_authenticate_accepts_bearer_access_token(manager, user):
    pair = manager.login("a@x.com", "secret1")
    assert manager.authenticate({"Authorization": f"Bearer {pair.access_token}"}) == user.id


def test_authenticate_rejects_missing_and_empty_bearer(manager):
    with pytest.raises(MissingCredential):
        manager.authenticate({})
    with pytest.raises(MalformedCredential):
        manager.authenticate({"Authorization": "Bearer "})


def test_authenticate_rejects_api_key_scheme(manager):
    with pytest.raises(MalformedCredential):
        manager.authenticate({"Authorization": "ApiKey svc-key"})


def test_authenticate_rejects_expired_access_token(manager, user):
    token = manager.codec.mint(user.id, manager.config.jwt_secret, timedelta(seconds=-1))
    with pytest.raises(Expired):
        manager.authenticate({"Authorization": f"Bearer {token}"})


def test_authorize_service(manager):
    manager.authorize_service({"Authorization": "ApiKey svc-key"})
    with pytest.raises(Unauthorized):
        manager.authorize_service({"Authorization": "ApiKey wrong"})
    with pytest.raises(MalformedCredential):
        manager.authorize_service({"Authorization": "Bearer svc-key"})


def test_authorize_service_without_configured_key_rejects_everything(hasher):
    manager = SessionManager(
        SessionConfig(jwt_secret=SECRET),
        users=InMemoryUserStore(),
        refresh_tokens=InMemoryRefreshTokenStore(),
        hasher=hasher,
    )
    with pytest.raises(Unauthorized):
        manager.authorize_service({"Authorization": "ApiKey anything"})


# ------------------------------- config ----------------------------------- #
def test_config_requires_secret():
    with pytest.raises(ValueError):
        SessionConfig(jwt_secret="")


def test_config_repr_hides_secrets():
    config = SessionConfig(jwt_secret=SECRET, api_key="svc-key")
    assert SECRET not in repr(config)
    assert "svc-key" not in repr(config)


def test_refresh_tokens_are_unique():
    tokens = {generate_refresh_token() for _ in range(10_000)}
    assert len(tokens) == 10_000
    assert all(len(t) == 64 for t in tokens)


def test_overlong_password_costs_one_verification_for_known_and_unknown_email(manager, user, monkeypatch):
    calls = []
    real_verify = argon2.PasswordHasher.verify

    def counting_verify(self, password_hash, plaintext):
        calls.append(password_hash)
        return real_verify(self, password_hash, plaintext)

    monkeypatch.setattr(argon2.PasswordHasher, "verify", counting_verify)
    overlong = "p" * (manager.hasher.max_bytes + 1)

    with pytest.raises(InvalidCredentials):
        manager.login("a@x.com", overlong)
    known = len(calls)
    with pytest.raises(InvalidCredentials):
        manager.login("nouser@x.com", overlong)
    unknown = len(calls) - known

    assert known == unknown == 1
