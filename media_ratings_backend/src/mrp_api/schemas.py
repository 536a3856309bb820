"""
Pydantic models (request/response shapes) for API endpoints.

JSON uses camelCase keys (`mediaType`, `creatorId`, ...). Unknown request keys are
ignored, so a client-sent `id` or `creatorId` never reaches the services.
String limits mirror the column sizes in `models.py`.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt
from pydantic.alias_generators import to_camel

from mrp_api.models import MAX_INTEGER, MediaEntry, Rating


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class CredentialsRequest(_CamelModel):
    username: Optional[str] = Field(None, max_length=255, description="Unique user name.")
    password: Optional[str] = Field(None, description="User password (min 3 chars).")


class TokenResponse(_CamelModel):
    token: str = Field(..., description="Bearer token: <username>-mrpToken-<uuid>.")


class UserResponse(_CamelModel):
    id: int = Field(..., description="User id.")
    username: str = Field(..., description="Unique user name.")
    email: Optional[str] = Field(None, description="Contact email, if set.")
    favorite_genre: Optional[str] = Field(None, description="Favorite genre, if set.")
    created_at: Optional[datetime] = Field(None, description="Registration timestamp.")


class ProfileUpdateRequest(_CamelModel):
    email: Optional[EmailStr] = Field(None, description="Contact email.")
    favorite_genre: Optional[str] = Field(None, max_length=100, description="Favorite genre tag.")


class MediaRequest(_CamelModel):
    """Media fields a client may send. `creator_id` is accepted but always overwritten."""

    title: Optional[str] = Field(None, max_length=500, description="Required, non-blank.")
    description: Optional[str] = Field(None, description="Free text.")
    media_type: Optional[str] = Field(None, max_length=50, description="movie, series, game, ...")
    release_year: Optional[int] = Field(
        None, ge=-MAX_INTEGER, le=MAX_INTEGER, description="Year of release."
    )
    genres: Optional[List[str]] = Field(None, description="Genre tags; omitted means none.")
    age_restriction: Optional[int] = Field(
        None, ge=-MAX_INTEGER, le=MAX_INTEGER, description="Minimum viewer age."
    )
    creator_id: Optional[int] = Field(None, description="Ignored; the caller becomes the creator.")

    def to_entry(self) -> MediaEntry:
        return MediaEntry(
            title=self.title,
            description=self.description,
            media_type=self.media_type,
            release_year=self.release_year,
            genres=list(self.genres or []),
            age_restriction=self.age_restriction,
            creator_id=self.creator_id,
        )


class MediaResponse(_CamelModel):
    id: int = Field(..., description="Media entry id.")
    title: str = Field(..., description="Title.")
    description: Optional[str] = Field(None, description="Free text.")
    media_type: Optional[str] = Field(None, description="movie, series, game, ...")
    release_year: Optional[int] = Field(None, description="Year of release.")
    genres: List[str] = Field(default_factory=list, description="Genre tags.")
    age_restriction: Optional[int] = Field(None, description="Minimum viewer age.")
    creator_id: int = Field(..., description="Id of the user who created the entry.")
    average_score: float = Field(0.0, description="Mean stars over all ratings, 0 when unrated.")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp.")


class RatingRequest(_CamelModel):
    # Strict: JSON booleans and numeric strings are not star values.
    stars: Optional[StrictInt] = Field(None, description="1 to 5 inclusive.")
    comment: Optional[str] = Field(None, description="Optional comment; needs the media creator's confirmation.")


class RatingResponse(_CamelModel):
    id: int = Field(..., description="Rating id.")
    user_id: int = Field(..., description="Author of the rating.")
    media_id: int = Field(..., description="Rated media entry.")
    stars: int = Field(..., description="1 to 5 inclusive.")
    comment: Optional[str] = Field(None, description="Comment; null while unconfirmed for other viewers.")
    timestamp: Optional[datetime] = Field(None, description="Creation timestamp.")
    likes: int = Field(0, description="Number of users who liked the rating.")
    confirmed: bool = Field(False, description="Whether the media creator confirmed the comment.")

    @classmethod
    def from_rating(cls, rating: Rating, *, reveal_comment: bool = True) -> "RatingResponse":
        """Build a response; unconfirmed comments are blanked unless `reveal_comment`."""
        view = cls.model_validate(rating)
        if not (rating.confirmed or reveal_comment):
            view.comment = None
        return view


class MessageResponse(BaseModel):
    message: str = Field(..., description="Human-readable result.")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message.")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service status text.")
    version: str = Field(..., description="Service version.")


def error_responses(*status_codes: int) -> dict:
    """OpenAPI `responses=` entries documenting the `{"error": ...}` body."""
    return {code: {"model": ErrorResponse} for code in status_codes}
