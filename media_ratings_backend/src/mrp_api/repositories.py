"""
Repositories: all SQL for users, media, ratings, favorites and rating likes.

Each repository works on the Session it was constructed with; transaction
boundaries belong to the caller (`Database.session()`).
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mrp_api.models import MAX_INTEGER, Favorite, MediaEntry, Rating, RatingLike, User


def _storable_id(value: int) -> bool:
    # Ids outside the Integer column range can never match a row; the drivers
    # reject them (OverflowError / DataError) instead of returning nothing.
    return 0 < value <= MAX_INTEGER


class UserRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, user: User) -> User:
        """Insert a user and flush so id/created_at are populated."""
        self._db.add(user)
        self._db.flush()
        return user

    def find_by_id(self, user_id: int) -> Optional[User]:
        if not _storable_id(user_id):
            return None
        return self._db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()

    def find_by_username(self, username: str) -> Optional[User]:
        return self._db.execute(select(User).where(User.username == username)).scalar_one_or_none()

    def find_by_token(self, token: str) -> Optional[User]:
        return self._db.execute(select(User).where(User.token == token)).scalar_one_or_none()

    def update_token(self, user: User, token: str) -> None:
        user.token = token
        self._db.flush()

    def update_profile(self, user: User, email: Optional[str], favorite_genre: Optional[str]) -> User:
        user.email = email
        user.favorite_genre = favorite_genre
        self._db.flush()
        return user


class MediaRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, entry: MediaEntry) -> MediaEntry:
        self._db.add(entry)
        self._db.flush()
        return entry

    def find_by_id(self, media_id: int) -> Optional[MediaEntry]:
        if not _storable_id(media_id):
            return None
        return self._db.execute(select(MediaEntry).where(MediaEntry.id == media_id)).scalar_one_or_none()

    def find_all(self) -> List[MediaEntry]:
        return list(self._db.execute(select(MediaEntry).order_by(MediaEntry.id.asc())).scalars().all())

    def find_by_ids(self, media_ids: List[int]) -> List[MediaEntry]:
        if not media_ids:
            return []
        stmt = select(MediaEntry).where(MediaEntry.id.in_(media_ids)).order_by(MediaEntry.id.asc())
        return list(self._db.execute(stmt).scalars().all())

    def flush(self) -> None:
        self._db.flush()

    def delete_with_dependents(self, entry: MediaEntry) -> None:
        """
        Delete a media entry together with everything that references it.

        Order: likes on its ratings, its ratings, favorites, then the media row.
        """
        rating_ids = select(Rating.id).where(Rating.media_id == entry.id)
        self._db.execute(delete(RatingLike).where(RatingLike.rating_id.in_(rating_ids)))
        self._db.execute(delete(Rating).where(Rating.media_id == entry.id))
        self._db.execute(delete(Favorite).where(Favorite.media_id == entry.id))
        self._db.delete(entry)
        self._db.flush()


class RatingRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, rating: Rating) -> Rating:
        self._db.add(rating)
        self._db.flush()
        return rating

    def find_by_id(self, rating_id: int) -> Optional[Rating]:
        if not _storable_id(rating_id):
            return None
        return self._db.execute(select(Rating).where(Rating.id == rating_id)).scalar_one_or_none()

    def find_by_user_and_media(self, user_id: int, media_id: int) -> Optional[Rating]:
        stmt = select(Rating).where(Rating.user_id == user_id, Rating.media_id == media_id)
        return self._db.execute(stmt).scalar_one_or_none()

    def find_by_media_id(self, media_id: int) -> List[Rating]:
        stmt = (
            select(Rating)
            .where(Rating.media_id == media_id)
            .order_by(Rating.timestamp.desc(), Rating.id.desc())
        )
        return list(self._db.execute(stmt).scalars().all())

    def find_by_user_id(self, user_id: int) -> List[Rating]:
        stmt = (
            select(Rating)
            .where(Rating.user_id == user_id)
            .order_by(Rating.timestamp.desc(), Rating.id.desc())
        )
        return list(self._db.execute(stmt).scalars().all())

    def flush(self) -> None:
        self._db.flush()

    def delete(self, rating: Rating) -> None:
        self._db.execute(delete(RatingLike).where(RatingLike.rating_id == rating.id))
        self._db.delete(rating)
        self._db.flush()

    def average_stars(self, media_id: int) -> float:
        value = self._db.execute(
            select(func.avg(Rating.stars)).where(Rating.media_id == media_id)
        ).scalar_one()
        return round(float(value), 2) if value is not None else 0.0

    def _insert_ignoring_duplicate(self, row) -> bool:
        """
        Insert a key-only row inside a savepoint.

        A concurrent insert of the same key only rolls back the savepoint, so the
        surrounding transaction carries on as if the row had already existed.
        """
        try:
            with self._db.begin_nested():
                self._db.add(row)
        except IntegrityError:
            return False
        return True

    # -- likes --------------------------------------------------------------

    def has_like(self, rating_id: int, user_id: int) -> bool:
        stmt = select(RatingLike).where(RatingLike.rating_id == rating_id, RatingLike.user_id == user_id)
        return self._db.execute(stmt).scalar_one_or_none() is not None

    def add_like(self, rating_id: int, user_id: int) -> bool:
        """Insert a like unless it already exists. Returns True if a row was added."""
        if self.has_like(rating_id, user_id):
            return False
        return self._insert_ignoring_duplicate(RatingLike(rating_id=rating_id, user_id=user_id))

    def count_likes(self, rating_id: int) -> int:
        stmt = select(func.count()).select_from(RatingLike).where(RatingLike.rating_id == rating_id)
        return int(self._db.execute(stmt).scalar_one())

    # -- favorites ----------------------------------------------------------

    def has_favorite(self, user_id: int, media_id: int) -> bool:
        stmt = select(Favorite).where(Favorite.user_id == user_id, Favorite.media_id == media_id)
        return self._db.execute(stmt).scalar_one_or_none() is not None

    def add_favorite(self, user_id: int, media_id: int) -> bool:
        if self.has_favorite(user_id, media_id):
            return False
        return self._insert_ignoring_duplicate(Favorite(user_id=user_id, media_id=media_id))

    def remove_favorite(self, user_id: int, media_id: int) -> bool:
        result = self._db.execute(
            delete(Favorite).where(Favorite.user_id == user_id, Favorite.media_id == media_id)
        )
        return bool(result.rowcount)

    def favorite_media_ids(self, user_id: int) -> List[int]:
        stmt = select(Favorite.media_id).where(Favorite.user_id == user_id).order_by(Favorite.created_at.asc())
        return [int(media_id) for media_id in self._db.execute(stmt).scalars().all()]
