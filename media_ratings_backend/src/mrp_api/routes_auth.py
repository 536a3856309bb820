"""
Auth endpoints:
- POST /api/users/register
- POST /api/users/login

Login responds with { token }, to be sent back as `Authorization: Bearer <token>`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from mrp_api.auth import AuthService
from mrp_api.db import Database, get_database
from mrp_api.repositories import UserRepository
from mrp_api.schemas import CredentialsRequest, TokenResponse, UserResponse, error_responses

router = APIRouter(prefix="/api/users", tags=["Auth"], responses=error_responses(400, 401))


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Creates a new user. The password is never returned.",
    operation_id="register_user",
)
def register(req: CredentialsRequest, database: Database = Depends(get_database)) -> UserResponse:
    """Register a new user with username/password."""
    with database.session() as db:
        user = AuthService(UserRepository(db)).register(req.username, req.password)
        return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login",
    description="Validates credentials and returns a new bearer token, replacing any earlier one.",
    operation_id="login_user",
)
def login(req: CredentialsRequest, database: Database = Depends(get_database)) -> TokenResponse:
    """Login an existing user."""
    with database.session() as db:
        token = AuthService(UserRepository(db)).login(req.username, req.password)
        return TokenResponse(token=token)
