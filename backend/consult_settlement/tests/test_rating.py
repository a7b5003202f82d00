"""
Tests for the rating gate.
"""
from datetime import timedelta
from unittest.mock import MagicMock
import pytest
from conftest import CONSULTANT_ID, MEETING_AT, USER_ACCOUNT_ID
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.models.consultation import ConsultantRating, UserRating
from consult_settlement.services.rating_service import RatingRole, RatingService

END_OF_MEETING = MEETING_AT + timedelta(minutes=60)


def test_rating_at_end_of_meeting_is_rejected(db, seed, policy):
    seed.consultation()
    service = RatingService(db, policy)
    with pytest.raises(ApiError) as exc:
        service.submit_rating(USER_ACCOUNT_ID, 1, RatingRole.CONSULTANT, 5, END_OF_MEETING)
    assert exc.value.code == Code.END_OF_CONSULTATION_DATE_TIME_HAS_NOT_PASSED_YET


def test_rating_right_after_end_of_meeting_is_accepted(db, seed, policy):
    seed.consultation()
    rated_at = END_OF_MEETING + timedelta(seconds=1)
    RatingService(db, policy).submit_rating(USER_ACCOUNT_ID, 1, RatingRole.CONSULTANT, 4, rated_at)

    rating = db.query(ConsultantRating).filter(ConsultantRating.consultation_id == 1).one()
    assert rating.rating == 4
    assert rating.rated_at == rated_at


@pytest.mark.parametrize("value", [1, 2, 3, 4, 5])
def test_ratings_in_range_are_accepted(db, seed, policy, value):
    seed.consultation()
    RatingService(db, policy).submit_rating(
        CONSULTANT_ID, 1, RatingRole.USER, value, END_OF_MEETING + timedelta(minutes=1)
    )
    assert db.query(UserRating).filter(UserRating.consultation_id == 1).one().rating == value


@pytest.mark.parametrize("value", [0, 6, -1])
def test_ratings_out_of_range_are_rejected(db, seed, policy, value):
    seed.consultation()
    with pytest.raises(ApiError) as exc:
        RatingService(db, policy).submit_rating(
            CONSULTANT_ID, 1, RatingRole.USER, value, END_OF_MEETING + timedelta(minutes=1)
        )
    assert exc.value.code == Code.INVALID_RATING


@pytest.mark.parametrize("role,rater_id,code", [
    (RatingRole.USER, CONSULTANT_ID, Code.USER_ACCOUNT_HAS_ALREADY_BEEN_RATED),
    (RatingRole.CONSULTANT, USER_ACCOUNT_ID, Code.CONSULTANT_HAS_ALREADY_BEEN_RATED),
])
def test_second_rating_is_rejected(db, seed, policy, role, rater_id, code):
    seed.consultation()
    service = RatingService(db, policy)
    current_time = END_OF_MEETING + timedelta(minutes=1)
    service.submit_rating(rater_id, 1, role, 3, current_time)

    with pytest.raises(ApiError) as exc:
        service.submit_rating(rater_id, 1, role, 5, current_time + timedelta(minutes=1))
    assert exc.value.code == code


def test_rating_row_is_created_on_first_submission(db, seed, policy):
    seed.consultation()
    db.query(UserRating).delete()
    db.commit()

    RatingService(db, policy).submit_rating(
        CONSULTANT_ID, 1, RatingRole.USER, 2, END_OF_MEETING + timedelta(minutes=1)
    )
    assert db.query(UserRating).filter(UserRating.consultation_id == 1).one().rating == 2


def test_only_the_other_party_can_rate(db, seed, policy):
    seed.consultation()
    with pytest.raises(ApiError) as exc:
        # the requester cannot rate themselves
        RatingService(db, policy).submit_rating(
            USER_ACCOUNT_ID, 1, RatingRole.USER, 5, END_OF_MEETING + timedelta(minutes=1)
        )
    assert exc.value.code == Code.NO_CONSULTATION_FOUND


@pytest.mark.parametrize("consultation_id", [0, -1])
def test_non_positive_consultation_id_does_not_touch_database(policy, consultation_id):
    db = MagicMock()
    with pytest.raises(ApiError) as exc:
        RatingService(db, policy).submit_rating(
            USER_ACCOUNT_ID, consultation_id, RatingRole.CONSULTANT, 5, END_OF_MEETING
        )
    assert exc.value.code == Code.CONSULTATION_ID_IS_NOT_POSITIVE
    db.query.assert_not_called()


def test_rate_consultant_endpoint(client, seed, clock, user_headers):
    seed.consultation()
    clock.now = END_OF_MEETING + timedelta(seconds=1)

    response = client.post(
        "/api/rating/consultant-rating", json={"consultation_id": 1, "rating": 5}, headers=user_headers
    )
    assert response.status_code == 200
    assert response.json() == {}

    response = client.post(
        "/api/rating/consultant-rating", json={"consultation_id": 1, "rating": 5}, headers=user_headers
    )
    assert response.status_code == 400
    assert response.json() == {"code": Code.CONSULTANT_HAS_ALREADY_BEEN_RATED}


def test_rate_user_endpoint_before_end_of_meeting(client, seed, clock, consultant_headers):
    seed.consultation()
    clock.now = END_OF_MEETING

    response = client.post(
        "/api/rating/user-rating", json={"consultation_id": 1, "rating": 3}, headers=consultant_headers
    )
    assert response.status_code == 400
    assert response.json() == {"code": Code.END_OF_CONSULTATION_DATE_TIME_HAS_NOT_PASSED_YET}


def test_admin_can_read_ratings(client, seed, admin_headers):
    seed.consultation(rated=True)

    response = client.get("/api/admin/user-rating", params={"consultation_id": 1}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()["user_rating"]
    assert body["consultation_id"] == 1
    assert body["rating"] == 5
    assert body["rated_at"] == "2023-06-10T11:05:00+09:00"

    rating_id = body["rating_id"]
    response = client.get("/api/admin/user-rating", params={"rating_id": rating_id}, headers=admin_headers)
    assert response.json()["user_rating"]["rating_id"] == rating_id

    response = client.get("/api/admin/consultant-rating", params={"rating_id": 0}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"code": Code.RATING_ID_IS_NOT_POSITIVE}
