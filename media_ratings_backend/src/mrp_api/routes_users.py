"""
User endpoints (all require authentication):
- GET /api/users/{id}/profile
- PUT /api/users/{id}/profile     (self only)
- GET /api/users/{id}/ratings     rating history, newest first
- GET /api/users/{id}/favorites
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from mrp_api.auth import AuthService, get_current_user
from mrp_api.db import Database, get_database
from mrp_api.models import User
from mrp_api.repositories import MediaRepository, RatingRepository, UserRepository
from mrp_api.schemas import (
    MediaResponse,
    ProfileUpdateRequest,
    RatingResponse,
    UserResponse,
    error_responses,
)
from mrp_api.services import RatingService

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses=error_responses(400, 401, 403, 404),
)


@router.get(
    "/{user_id:int}/profile",
    response_model=UserResponse,
    summary="Get a user profile",
    operation_id="get_profile",
)
def get_profile(
    user_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> UserResponse:
    with database.session() as db:
        return UserResponse.model_validate(AuthService(UserRepository(db)).get_profile(user_id))


@router.put(
    "/{user_id:int}/profile",
    response_model=UserResponse,
    summary="Update own profile",
    description="Sets email and favorite genre. Users can only edit their own profile.",
    operation_id="update_profile",
)
def update_profile(
    user_id: int,
    req: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> UserResponse:
    with database.session() as db:
        updated = AuthService(UserRepository(db)).update_profile(
            user_id, user.id, req.email, req.favorite_genre
        )
        return UserResponse.model_validate(updated)


@router.get(
    "/{user_id:int}/ratings",
    response_model=List[RatingResponse],
    summary="Rating history of a user",
    description="Other users only see confirmed comments.",
    operation_id="list_user_ratings",
)
def list_user_ratings(
    user_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> List[RatingResponse]:
    with database.session() as db:
        AuthService(UserRepository(db)).get_profile(user_id)
        ratings = RatingService(MediaRepository(db), RatingRepository(db)).list_user_ratings(user_id)
        return [RatingResponse.from_rating(r, reveal_comment=user.id == user_id) for r in ratings]


@router.get(
    "/{user_id:int}/favorites",
    response_model=List[MediaResponse],
    summary="Favorite media of a user",
    operation_id="list_favorites",
)
def list_favorites(
    user_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> List[MediaResponse]:
    with database.session() as db:
        AuthService(UserRepository(db)).get_profile(user_id)
        favorites = RatingService(MediaRepository(db), RatingRepository(db)).list_favorites(user_id)
        return [MediaResponse.model_validate(entry) for entry in favorites]
