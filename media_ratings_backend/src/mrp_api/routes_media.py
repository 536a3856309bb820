"""
Media endpoints:
- GET    /api/media                      (public, ordered by id)
- POST   /api/media                      (auth; caller becomes creator)
- GET    /api/media/{id}                 (public)
- PUT    /api/media/{id}                 (auth; creator only)
- DELETE /api/media/{id}                 (auth; creator only; removes ratings too)
- GET    /api/media/{id}/ratings         (public; unconfirmed comments hidden)
- POST   /api/media/{id}/rate            (auth; one rating per user)
- POST   /api/media/{id}/favorite        (auth; idempotent)
- DELETE /api/media/{id}/favorite        (auth; idempotent)

`{id}` only matches digits, so `/api/media/abc` is an unknown route (404).
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from mrp_api.auth import get_current_user, get_optional_user
from mrp_api.db import Database, get_database
from mrp_api.errors import NotFoundError, ValidationError
from mrp_api.models import User
from mrp_api.repositories import MediaRepository, RatingRepository
from mrp_api.schemas import (
    MediaRequest,
    MediaResponse,
    MessageResponse,
    RatingRequest,
    RatingResponse,
    error_responses,
)
from mrp_api.services import MediaService, RatingService


router = APIRouter(
    prefix="/api/media",
    tags=["Media"],
    responses=error_responses(400, 401, 403, 404, 409),
)

MIN_STARS = 1
MAX_STARS = 5


def _media_service(db: Session) -> MediaService:
    return MediaService(MediaRepository(db), RatingRepository(db))


def _rating_service(db: Session) -> RatingService:
    return RatingService(MediaRepository(db), RatingRepository(db))


def _require_title(req: MediaRequest) -> None:
    if req.title is None or not req.title.strip():
        raise ValidationError("Title is required")


# PUBLIC_INTERFACE
def require_stars(stars: Optional[int]) -> int:
    """Validate a star value at the request boundary."""
    if stars is None or not (MIN_STARS <= stars <= MAX_STARS):
        raise ValidationError(f"Stars must be between {MIN_STARS} and {MAX_STARS}")
    return stars


@router.get(
    "",
    response_model=List[MediaResponse],
    summary="List all media",
    description="Returns every media entry ordered by ascending id.",
    operation_id="list_media",
)
def list_media(database: Database = Depends(get_database)) -> List[MediaResponse]:
    with database.session() as db:
        return [MediaResponse.model_validate(entry) for entry in _media_service(db).list_media()]


@router.post(
    "",
    response_model=MediaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a media entry",
    description="Creates a media entry owned by the authenticated user. A creatorId in the body is ignored.",
    operation_id="create_media",
)
def create_media(
    req: MediaRequest,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> MediaResponse:
    _require_title(req)
    with database.session() as db:
        entry = _media_service(db).create_media(req.to_entry(), user.id)
        return MediaResponse.model_validate(entry)


@router.get(
    "/{media_id:int}",
    response_model=MediaResponse,
    summary="Get a media entry",
    operation_id="get_media",
)
def get_media(media_id: int, database: Database = Depends(get_database)) -> MediaResponse:
    with database.session() as db:
        entry = _media_service(db).get_media(media_id)
        if entry is None:
            raise NotFoundError("Media not found")
        return MediaResponse.model_validate(entry)


@router.put(
    "/{media_id:int}",
    response_model=MessageResponse,
    summary="Update a media entry",
    description="Replaces all editable fields. Only the creator may update.",
    operation_id="update_media",
)
def update_media(
    media_id: int,
    req: MediaRequest,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> MessageResponse:
    _require_title(req)
    with database.session() as db:
        _media_service(db).update_media(media_id, req.to_entry(), user.id)
    return MessageResponse(message="Media updated successfully")


@router.delete(
    "/{media_id:int}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a media entry",
    description="Deletes the entry and all its ratings. Only the creator may delete.",
    operation_id="delete_media",
)
def delete_media(
    media_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> Response:
    with database.session() as db:
        _media_service(db).delete_media(media_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{media_id:int}/ratings",
    response_model=List[RatingResponse],
    summary="List ratings of a media entry",
    description=(
        "Newest first. Unconfirmed comments are only shown to their author "
        "and to the creator of the media entry."
    ),
    operation_id="list_media_ratings",
)
def list_media_ratings(
    media_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    database: Database = Depends(get_database),
) -> List[RatingResponse]:
    with database.session() as db:
        entry = _media_service(db).require_media(media_id)
        ratings = _rating_service(db).list_media_ratings(media_id)
        viewer_id = viewer.id if viewer is not None else None
        return [
            RatingResponse.from_rating(
                rating,
                reveal_comment=viewer_id is not None and viewer_id in (rating.user_id, entry.creator_id),
            )
            for rating in ratings
        ]


@router.post(
    "/{media_id:int}/rate",
    response_model=RatingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Rate a media entry",
    description="1-5 stars plus optional comment. A second rating by the same user is rejected with 409.",
    operation_id="rate_media",
)
def rate_media(
    media_id: int,
    req: RatingRequest,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> RatingResponse:
    stars = require_stars(req.stars)
    with database.session() as db:
        rating = _rating_service(db).rate(media_id, user.id, stars, req.comment)
        return RatingResponse.from_rating(rating)


@router.post(
    "/{media_id:int}/favorite",
    response_model=MessageResponse,
    summary="Mark as favorite",
    operation_id="favorite_media",
)
def favorite_media(
    media_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> MessageResponse:
    with database.session() as db:
        _rating_service(db).favorite(user.id, media_id)
    return MessageResponse(message="Media marked as favorite")


@router.delete(
    "/{media_id:int}/favorite",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove from favorites",
    operation_id="unfavorite_media",
)
def unfavorite_media(
    media_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> Response:
    with database.session() as db:
        _rating_service(db).unfavorite(user.id, media_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
