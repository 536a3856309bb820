from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from mrp_api.db import Database
from mrp_api.main import create_app
from mrp_api.models import User
from mrp_api.repositories import UserRepository


@pytest.fixture()
def database() -> Iterator[Database]:
    db = Database("sqlite://", echo=False)
    db.create_schema()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def client(database: Database) -> TestClient:
    return TestClient(create_app(database))


@pytest.fixture()
def make_user(database: Database):
    """Insert a user row directly and return its id."""

    def _make(username: str) -> int:
        with database.session() as db:
            user = UserRepository(db).add(User(username=username, password_hash="unused"))
            return user.id

    return _make
