"""
Rating endpoints (all require authentication):
- PUT    /api/ratings/{id}           edit stars/comment (author only)
- DELETE /api/ratings/{id}           delete (author only)
- POST   /api/ratings/{id}/confirm   approve the comment (media creator only)
- POST   /api/ratings/{id}/like      like (idempotent)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from mrp_api.auth import get_current_user
from mrp_api.db import Database, get_database
from mrp_api.models import User
from mrp_api.repositories import MediaRepository, RatingRepository
from mrp_api.routes_media import require_stars
from mrp_api.schemas import MessageResponse, RatingRequest, RatingResponse, error_responses
from mrp_api.services import RatingService

router = APIRouter(
    prefix="/api/ratings",
    tags=["Ratings"],
    responses=error_responses(400, 401, 403, 404),
)


def _rating_service(db: Session) -> RatingService:
    return RatingService(MediaRepository(db), RatingRepository(db))


@router.put(
    "/{rating_id:int}",
    response_model=RatingResponse,
    summary="Edit a rating",
    description="Changing the comment resets its confirmation.",
    operation_id="update_rating",
)
def update_rating(
    rating_id: int,
    req: RatingRequest,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> RatingResponse:
    stars = require_stars(req.stars)
    with database.session() as db:
        rating = _rating_service(db).update_rating(rating_id, user.id, stars, req.comment)
        return RatingResponse.from_rating(rating)


@router.delete(
    "/{rating_id:int}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a rating",
    operation_id="delete_rating",
)
def delete_rating(
    rating_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> Response:
    with database.session() as db:
        _rating_service(db).delete_rating(rating_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{rating_id:int}/confirm",
    response_model=MessageResponse,
    summary="Confirm a rating comment",
    operation_id="confirm_rating_comment",
)
def confirm_comment(
    rating_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> MessageResponse:
    with database.session() as db:
        _rating_service(db).confirm_comment(rating_id, user.id)
    return MessageResponse(message="Comment confirmed")


@router.post(
    "/{rating_id:int}/like",
    response_model=RatingResponse,
    summary="Like a rating",
    description="Liking the same rating again has no effect.",
    operation_id="like_rating",
)
def like_rating(
    rating_id: int,
    user: User = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> RatingResponse:
    with database.session() as db:
        rating = _rating_service(db).like_rating(rating_id, user.id)
        return RatingResponse.from_rating(rating, reveal_comment=rating.user_id == user.id)
