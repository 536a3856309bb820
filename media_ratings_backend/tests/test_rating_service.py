from __future__ import annotations

import pytest

from mrp_api.db import Database
from mrp_api.errors import ErrorKind, ServiceError
from mrp_api.models import MediaEntry
from mrp_api.repositories import MediaRepository, RatingRepository
from mrp_api.services import MediaService, RatingService


def _service(db) -> RatingService:
    return RatingService(MediaRepository(db), RatingRepository(db))


def _media(database: Database, creator_id: int, title: str = "Dune") -> int:
    with database.session() as db:
        entry = MediaService(MediaRepository(db), RatingRepository(db)).create_media(
            MediaEntry(title=title, media_type="movie", genres=[]), creator_id
        )
        return entry.id


def _rate(database: Database, media_id: int, user_id: int, stars: int, comment=None) -> int:
    with database.session() as db:
        return _service(db).rate(media_id, user_id, stars, comment).id


def _average(database: Database, media_id: int) -> float:
    with database.session() as db:
        return MediaRepository(db).find_by_id(media_id).average_score


def test_second_rating_by_same_user_conflicts(database: Database, make_user) -> None:
    alice = make_user("alice")
    media_id = _media(database, alice)
    _rate(database, media_id, alice, 4)

    with pytest.raises(ServiceError) as exc_info:
        _rate(database, media_id, alice, 2)
    assert exc_info.value.kind is ErrorKind.CONFLICT

    with database.session() as db:
        ratings = RatingRepository(db).find_by_media_id(media_id)
    assert [r.stars for r in ratings] == [4]


def test_rating_missing_media_is_not_found(database: Database, make_user) -> None:
    alice = make_user("alice")
    with pytest.raises(ServiceError) as exc_info:
        _rate(database, 12345, alice, 3)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


def test_average_score_follows_rating_changes(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)

    assert _average(database, media_id) == 0
    _rate(database, media_id, alice, 4)
    bob_rating = _rate(database, media_id, bob, 2)
    assert _average(database, media_id) == pytest.approx(3.0)

    with database.session() as db:
        _service(db).update_rating(bob_rating, bob, 5, None)
    assert _average(database, media_id) == pytest.approx(4.5)

    with database.session() as db:
        _service(db).delete_rating(bob_rating, bob)
    assert _average(database, media_id) == pytest.approx(4.0)


def test_only_author_can_edit_or_delete_rating(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)
    rating_id = _rate(database, media_id, bob, 3, "fine")

    with pytest.raises(ServiceError) as edit_error:
        with database.session() as db:
            _service(db).update_rating(rating_id, alice, 1, "bad")
    with pytest.raises(ServiceError) as delete_error:
        with database.session() as db:
            _service(db).delete_rating(rating_id, alice)

    assert edit_error.value.kind is ErrorKind.AUTHORIZATION
    assert delete_error.value.kind is ErrorKind.AUTHORIZATION
    with database.session() as db:
        rating = RatingRepository(db).find_by_id(rating_id)
        assert (rating.stars, rating.comment) == (3, "fine")


def test_only_media_creator_confirms_comment(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)
    rating_id = _rate(database, media_id, bob, 5, "loved it")

    with pytest.raises(ServiceError) as exc_info:
        with database.session() as db:
            _service(db).confirm_comment(rating_id, bob)
    assert exc_info.value.kind is ErrorKind.AUTHORIZATION

    with database.session() as db:
        assert _service(db).confirm_comment(rating_id, alice).confirmed is True


def test_changed_comment_needs_new_confirmation(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)
    rating_id = _rate(database, media_id, bob, 5, "loved it")

    with database.session() as db:
        _service(db).confirm_comment(rating_id, alice)
    with database.session() as db:
        assert _service(db).update_rating(rating_id, bob, 4, "loved it").confirmed is True
    with database.session() as db:
        assert _service(db).update_rating(rating_id, bob, 4, "still good").confirmed is False


def test_like_rating_is_idempotent(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)
    rating_id = _rate(database, media_id, alice, 5)

    for _ in range(2):
        with database.session() as db:
            rating = _service(db).like_rating(rating_id, bob)
    assert rating.likes == 1

    with database.session() as db:
        assert _service(db).like_rating(rating_id, alice).likes == 2


def test_like_missing_rating_is_not_found(database: Database, make_user) -> None:
    alice = make_user("alice")
    with pytest.raises(ServiceError) as exc_info:
        with database.session() as db:
            _service(db).like_rating(77, alice)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


def test_favorite_and_unfavorite_are_idempotent(database: Database, make_user) -> None:
    alice = make_user("alice")
    first = _media(database, alice, "Dune")
    second = _media(database, alice, "Arrival")

    for _ in range(2):
        with database.session() as db:
            _service(db).favorite(alice, second)
            _service(db).favorite(alice, first)

    with database.session() as db:
        favorites = _service(db).list_favorites(alice)
    assert sorted(m.title for m in favorites) == ["Arrival", "Dune"]

    for _ in range(2):
        with database.session() as db:
            _service(db).unfavorite(alice, second)

    with database.session() as db:
        assert [m.id for m in _service(db).list_favorites(alice)] == [first]


def test_rating_lists(database: Database, make_user) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    first = _media(database, alice, "Dune")
    second = _media(database, alice, "Arrival")
    _rate(database, first, bob, 4)
    _rate(database, second, bob, 2)
    _rate(database, first, alice, 5)

    with database.session() as db:
        service = _service(db)
        assert sorted(r.stars for r in service.list_media_ratings(first)) == [4, 5]
        assert {r.media_id for r in service.list_user_ratings(bob)} == {first, second}
        with pytest.raises(ServiceError):
            service.list_media_ratings(999)


def test_duplicate_like_and_favorite_inserts_are_ignored(database: Database, make_user, monkeypatch) -> None:
    alice = make_user("alice")
    bob = make_user("bob")
    media_id = _media(database, alice)
    rating_id = _rate(database, media_id, alice, 5)

    with database.session() as db:
        _service(db).like_rating(rating_id, bob)
        _service(db).favorite(bob, media_id)

    # Another request inserted the same keys between the existence check and the insert.
    monkeypatch.setattr(RatingRepository, "has_like", lambda self, rating_id, user_id: False)
    monkeypatch.setattr(RatingRepository, "has_favorite", lambda self, user_id, media_id: False)

    with database.session() as db:
        assert _service(db).like_rating(rating_id, bob).likes == 1
        _service(db).favorite(bob, media_id)
        assert RatingRepository(db).add_like(rating_id, bob) is False

    with database.session() as db:
        assert RatingRepository(db).count_likes(rating_id) == 1
        assert RatingRepository(db).favorite_media_ids(bob) == [media_id]
