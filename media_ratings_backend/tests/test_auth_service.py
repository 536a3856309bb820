from __future__ import annotations

import pytest

from mrp_api.auth import AuthService, TOKEN_MARKER, verify_password
from mrp_api.db import Database
from mrp_api.errors import ErrorKind, ServiceError
from mrp_api.repositories import UserRepository


def _register(database: Database, username: str, password: str) -> int:
    with database.session() as db:
        return AuthService(UserRepository(db)).register(username, password).id


def _login(database: Database, username, password) -> str:
    with database.session() as db:
        return AuthService(UserRepository(db)).login(username, password)


def test_register_then_login_succeeds(database: Database) -> None:
    user_id = _register(database, "alice", "secret1")
    token = _login(database, "alice", "secret1")

    assert token.startswith("alice" + TOKEN_MARKER)
    with database.session() as db:
        assert AuthService(UserRepository(db)).validate_token(token).id == user_id


def test_password_is_stored_hashed(database: Database) -> None:
    _register(database, "alice", "secret1")
    with database.session() as db:
        user = UserRepository(db).find_by_username("alice")
        assert user is not None
        assert user.password_hash != "secret1"
        assert verify_password("secret1", user.password_hash) is True


@pytest.mark.parametrize("username", ["", "   ", None])
def test_register_rejects_blank_username(database: Database, username) -> None:
    with pytest.raises(ServiceError) as exc_info:
        _register(database, username, "secret1")
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert exc_info.value.message == "Username cannot be empty"


@pytest.mark.parametrize("password", ["", "ab", None])
def test_register_rejects_short_password(database: Database, password) -> None:
    with pytest.raises(ServiceError) as exc_info:
        _register(database, "alice", password)
    assert exc_info.value.kind is ErrorKind.VALIDATION


def test_register_accepts_three_character_password(database: Database) -> None:
    _register(database, "alice", "abc")
    assert _login(database, "alice", "abc")


def test_register_rejects_duplicate_username(database: Database) -> None:
    _register(database, "alice", "secret1")
    with pytest.raises(ServiceError) as exc_info:
        _register(database, "alice", "other-pass")
    assert exc_info.value.kind is ErrorKind.VALIDATION
    assert exc_info.value.message == "Username already exists"


def test_username_match_is_case_sensitive(database: Database) -> None:
    _register(database, "alice", "secret1")
    _register(database, "Alice", "secret2")
    assert _login(database, "Alice", "secret2").startswith("Alice" + TOKEN_MARKER)


def test_login_failure_does_not_reveal_which_credential_was_wrong(database: Database) -> None:
    _register(database, "alice", "secret1")

    with pytest.raises(ServiceError) as wrong_password:
        _login(database, "alice", "nope")
    with pytest.raises(ServiceError) as unknown_user:
        _login(database, "mallory", "secret1")

    assert wrong_password.value.kind is ErrorKind.AUTHENTICATION
    assert unknown_user.value.kind is ErrorKind.AUTHENTICATION
    assert wrong_password.value.message == unknown_user.value.message


def test_new_login_replaces_previous_token(database: Database) -> None:
    _register(database, "alice", "secret1")
    first = _login(database, "alice", "secret1")
    second = _login(database, "alice", "secret1")
    assert first != second

    with database.session() as db:
        service = AuthService(UserRepository(db))
        assert service.validate_token(second).username == "alice"
        with pytest.raises(ServiceError) as exc_info:
            service.validate_token(first)
    assert exc_info.value.kind is ErrorKind.AUTHENTICATION


@pytest.mark.parametrize("token", ["", None, "alice-mrpToken-not-issued"])
def test_validate_token_rejects_unknown_or_empty(database: Database, token) -> None:
    _register(database, "alice", "secret1")
    _login(database, "alice", "secret1")
    with database.session() as db:
        with pytest.raises(ServiceError) as exc_info:
            AuthService(UserRepository(db)).validate_token(token)
    assert exc_info.value.kind is ErrorKind.AUTHENTICATION


def test_profile_update_is_limited_to_owner(database: Database) -> None:
    alice_id = _register(database, "alice", "secret1")
    bob_id = _register(database, "bob", "secret2")

    with database.session() as db:
        updated = AuthService(UserRepository(db)).update_profile(
            alice_id, alice_id, "alice@mail.com", "sci-fi"
        )
        assert updated.favorite_genre == "sci-fi"

    with pytest.raises(ServiceError) as exc_info:
        with database.session() as db:
            AuthService(UserRepository(db)).update_profile(alice_id, bob_id, "bob@mail.com", "horror")
    assert exc_info.value.kind is ErrorKind.AUTHORIZATION

    with database.session() as db:
        alice = UserRepository(db).find_by_id(alice_id)
        assert alice.email == "alice@mail.com"
        assert alice.favorite_genre == "sci-fi"


def test_get_profile_of_missing_user_is_not_found(database: Database) -> None:
    with database.session() as db:
        with pytest.raises(ServiceError) as exc_info:
            AuthService(UserRepository(db)).get_profile(999)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND
