"""
Media and rating services.

Mutations are gated on ownership: only a media entry's creator may update or delete
it, only a rating's author may edit or delete it, and only the creator of the rated
media may confirm a rating's comment. Existence is always checked before ownership,
so callers never learn who owns a resource that does not exist.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from mrp_api.errors import AuthorizationError, ConflictError, NotFoundError
from mrp_api.models import MediaEntry, Rating
from mrp_api.repositories import MediaRepository, RatingRepository

logger = logging.getLogger(__name__)

# Fields a client may set on a media entry; everything else is server-owned.
_MEDIA_EDITABLE_FIELDS = (
    "title",
    "description",
    "media_type",
    "release_year",
    "genres",
    "age_restriction",
)


def _media_not_found(media_id: int):
    return NotFoundError(f"Media with ID {media_id} not found.")


def _rating_not_found(rating_id: int):
    return NotFoundError(f"Rating with ID {rating_id} not found.")


class MediaService:
    def __init__(self, media: MediaRepository, ratings: RatingRepository) -> None:
        self._media = media
        self._ratings = ratings

    def create_media(self, draft: MediaEntry, creator_id: int) -> MediaEntry:
        """Persist `draft` owned by `creator_id`; any creator id on the draft is replaced."""
        draft.creator_id = creator_id
        draft.id = None
        draft.average_score = 0.0
        if draft.genres is None:
            draft.genres = []
        entry = self._media.add(draft)
        logger.info("media_created: media_id=%s creator_id=%s", entry.id, creator_id)
        return entry

    def get_media(self, media_id: int) -> Optional[MediaEntry]:
        return self._media.find_by_id(media_id)

    def require_media(self, media_id: int) -> MediaEntry:
        entry = self._media.find_by_id(media_id)
        if entry is None:
            raise _media_not_found(media_id)
        return entry

    def list_media(self) -> List[MediaEntry]:
        return self._media.find_all()

    def update_media(self, media_id: int, new_data: MediaEntry, requester_id: int) -> MediaEntry:
        """Replace every editable field of the entry with the values from `new_data`."""
        existing = self.require_media(media_id)
        if existing.creator_id != requester_id:
            raise AuthorizationError("User is not authorized to update this media entry.")

        for field in _MEDIA_EDITABLE_FIELDS:
            setattr(existing, field, getattr(new_data, field))
        if existing.genres is None:
            existing.genres = []
        self._media.flush()
        logger.info("media_updated: media_id=%s requester_id=%s", media_id, requester_id)
        return existing

    def delete_media(self, media_id: int, requester_id: int) -> None:
        """Delete the entry and its ratings, likes and favorites in the caller's transaction."""
        existing = self.require_media(media_id)
        if existing.creator_id != requester_id:
            raise AuthorizationError("User is not authorized to delete this media entry.")

        self._media.delete_with_dependents(existing)
        logger.info("media_deleted: media_id=%s requester_id=%s", media_id, requester_id)


class RatingService:
    """
    Ratings, comment confirmation, rating likes and favorites.

    A user rates a media entry once; a second `rate` call is a conflict and the
    existing rating must be edited through `update_rating` instead.
    """

    def __init__(self, media: MediaRepository, ratings: RatingRepository) -> None:
        self._media = media
        self._ratings = ratings

    def _require_media(self, media_id: int) -> MediaEntry:
        entry = self._media.find_by_id(media_id)
        if entry is None:
            raise _media_not_found(media_id)
        return entry

    def _require_rating(self, rating_id: int) -> Rating:
        rating = self._ratings.find_by_id(rating_id)
        if rating is None:
            raise _rating_not_found(rating_id)
        return rating

    def _refresh_average(self, media_id: int) -> None:
        entry = self._media.find_by_id(media_id)
        if entry is not None:
            entry.average_score = self._ratings.average_stars(media_id)
            self._media.flush()

    def rate(self, media_id: int, user_id: int, stars: int, comment: Optional[str]) -> Rating:
        self._require_media(media_id)
        if self._ratings.find_by_user_and_media(user_id, media_id) is not None:
            raise ConflictError("You have already rated this media entry.")

        try:
            rating = self._ratings.add(
                Rating(user_id=user_id, media_id=media_id, stars=stars, comment=comment, likes=0, confirmed=False)
            )
        except IntegrityError:
            raise ConflictError("You have already rated this media entry.")

        self._refresh_average(media_id)
        logger.info("rating_created: rating_id=%s media_id=%s user_id=%s", rating.id, media_id, user_id)
        return rating

    def update_rating(self, rating_id: int, requester_id: int, stars: int, comment: Optional[str]) -> Rating:
        """Edit stars and comment. A changed comment needs to be confirmed again."""
        rating = self._require_rating(rating_id)
        if rating.user_id != requester_id:
            raise AuthorizationError("User is not authorized to update this rating.")

        if comment != rating.comment:
            rating.confirmed = False
        rating.stars = stars
        rating.comment = comment
        self._ratings.flush()
        self._refresh_average(rating.media_id)
        return rating

    def delete_rating(self, rating_id: int, requester_id: int) -> None:
        rating = self._require_rating(rating_id)
        if rating.user_id != requester_id:
            raise AuthorizationError("User is not authorized to delete this rating.")

        media_id = rating.media_id
        self._ratings.delete(rating)
        self._refresh_average(media_id)
        logger.info("rating_deleted: rating_id=%s requester_id=%s", rating_id, requester_id)

    def confirm_comment(self, rating_id: int, requester_id: int) -> Rating:
        """Only the creator of the rated media entry may confirm."""
        rating = self._require_rating(rating_id)
        entry = self._require_media(rating.media_id)
        if entry.creator_id != requester_id:
            raise AuthorizationError("Only the creator of the media entry can confirm comments.")

        rating.confirmed = True
        self._ratings.flush()
        return rating

    def like_rating(self, rating_id: int, user_id: int) -> Rating:
        rating = self._require_rating(rating_id)
        self._ratings.add_like(rating_id, user_id)
        rating.likes = self._ratings.count_likes(rating_id)
        self._ratings.flush()
        return rating

    def favorite(self, user_id: int, media_id: int) -> None:
        self._require_media(media_id)
        self._ratings.add_favorite(user_id, media_id)

    def unfavorite(self, user_id: int, media_id: int) -> None:
        self._require_media(media_id)
        self._ratings.remove_favorite(user_id, media_id)

    def list_favorites(self, user_id: int) -> List[MediaEntry]:
        media_ids = self._ratings.favorite_media_ids(user_id)
        by_id = {entry.id: entry for entry in self._media.find_by_ids(media_ids)}
        return [by_id[media_id] for media_id in media_ids if media_id in by_id]

    def list_media_ratings(self, media_id: int) -> List[Rating]:
        self._require_media(media_id)
        return self._ratings.find_by_media_id(media_id)

    def list_user_ratings(self, user_id: int) -> List[Rating]:
        return self._ratings.find_by_user_id(user_id)
