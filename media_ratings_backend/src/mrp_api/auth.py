"""
Authentication: password hashing, opaque session tokens and the bearer-token gate.

The frontend expects:
- Authorization: Bearer <token>
- POST /api/users/register
- POST /api/users/login  ->  {"token": "<username>-mrpToken-<uuid>"}

A user holds at most one live token; every login overwrites the previous one.
Tokens do not expire.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError

from mrp_api.db import Database, get_database
from mrp_api.errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from mrp_api.models import User
from mrp_api.repositories import UserRepository

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_MARKER = "-mrpToken-"
MIN_PASSWORD_LENGTH = 3

_INVALID_CREDENTIALS = "Invalid username or password"


# PUBLIC_INTERFACE
def hash_password(password: str) -> str:
    """Hash a plain-text password."""
    return _pwd_context.hash(password)


# PUBLIC_INTERFACE
def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plain-text password against a hash."""
    return _pwd_context.verify(password, password_hash)


# PUBLIC_INTERFACE
def create_session_token(username: str) -> str:
    """Return a new opaque token of the form `<username>-mrpToken-<uuid4>`."""
    return f"{username}{TOKEN_MARKER}{uuid.uuid4()}"


class AuthService:
    """Registration, login, token validation and profile maintenance."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def register(self, username: Optional[str], password: Optional[str]) -> User:
        if username is None or not username.strip():
            raise ValidationError("Username cannot be empty")
        if password is None or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Password must be at least 3 characters long")

        if self._users.find_by_username(username) is not None:
            raise ValidationError("Username already exists")

        try:
            user = self._users.add(User(username=username, password_hash=hash_password(password)))
        except IntegrityError:
            # Lost a race against a concurrent registration of the same name.
            raise ValidationError("Username already exists")

        logger.info("user_registered: user_id=%s username=%s", user.id, user.username)
        return user

    def login(self, username: Optional[str], password: Optional[str]) -> str:
        """
        Check credentials and issue a fresh token.

        Unknown username and wrong password raise the same error so callers cannot
        tell which one happened.
        """
        user = self._users.find_by_username(username) if username else None
        if user is None or password is None or not verify_password(password, user.password_hash):
            raise AuthenticationError(_INVALID_CREDENTIALS)

        token = create_session_token(user.username)
        self._users.update_token(user, token)
        logger.info("user_logged_in: user_id=%s", user.id)
        return token

    def validate_token(self, token: Optional[str]) -> User:
        if not token:
            raise AuthenticationError("Token cannot be empty")
        user = self._users.find_by_token(token)
        if user is None:
            raise AuthenticationError("Invalid or expired token.")
        return user

    def get_profile(self, user_id: int) -> User:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found.")
        return user

    def update_profile(
        self,
        user_id: int,
        requester_id: int,
        email: Optional[str],
        favorite_genre: Optional[str],
    ) -> User:
        user = self.get_profile(user_id)
        if user.id != requester_id:
            raise AuthorizationError("User is not authorized to update this profile.")
        return self._users.update_profile(user, email, favorite_genre)


# PUBLIC_INTERFACE
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    database: Database = Depends(get_database),
) -> User:
    """
    FastAPI dependency that returns the authenticated user.

    Raises 401 if the header is missing, uses another scheme, or carries an
    unknown token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authorization header is missing or invalid.")

    with database.session() as db:
        return AuthService(UserRepository(db)).validate_token(credentials.credentials)


# PUBLIC_INTERFACE
def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    database: Database = Depends(get_database),
) -> Optional[User]:
    """Like `get_current_user`, but anonymous requests resolve to None instead of 401."""
    if credentials is None:
        return None
    return get_current_user(credentials=credentials, database=database)
