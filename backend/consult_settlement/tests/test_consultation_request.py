"""
Tests for consultation requests and their acceptance.
"""
from datetime import datetime, timedelta
from decimal import Decimal
import pytest
from conftest import CONSULTANT_ID, JST, USER_ACCOUNT_ID
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.models.consultation import (
    Consultation, ConsultationRequest, ConsultantRating, UserRating
)
from consult_settlement.models.settlement import Settlement
from consult_settlement.schemas.consultation import ConsultationDateTime
from consult_settlement.services.consultation_request_service import ConsultationRequestService

NOW = datetime(2023, 6, 1, 9, 0, tzinfo=JST)


def candidates(*hours, day=5):
    return [ConsultationDateTime(year=2023, month=6, day=day, hour=hour) for hour in hours]


def request(service, **overrides):
    kwargs = dict(
        user_account_id=USER_ACCOUNT_ID,
        consultant_id=CONSULTANT_ID,
        fee_per_hour_in_yen=5000,
        card_token="tok_123",
        candidates=candidates(10, 11, 12),
        current_time=NOW,
    )
    kwargs.update(overrides)
    return service.request_consultation(**kwargs)


@pytest.fixture
def service(db, policy, gateway, seed):
    seed.consultant()
    return ConsultationRequestService(db, policy, gateway)


def test_request_consultation_holds_the_fee(db, service, gateway):
    charge_id = request(service)

    hold = gateway.calls_of("create_hold")[0]
    assert hold["amount"] == 5000
    assert hold["tenant_id"] == "tenant_20"
    assert hold["expiry_days"] == 7
    req = db.query(ConsultationRequest).one()
    assert req.charge_id == charge_id
    assert req.latest_candidate_date_time == datetime(2023, 6, 5, 12, 0, tzinfo=JST)
    assert req.credit_facilities_expired_at == NOW + timedelta(days=7)


def test_fee_changed_since_the_user_saw_it(service, gateway):
    with pytest.raises(ApiError) as exc:
        request(service, fee_per_hour_in_yen=4000)
    assert exc.value.code == Code.FEE_PER_HOUR_IN_YEN_WAS_UPDATED
    assert gateway.calls == []


@pytest.mark.parametrize("overrides,code", [
    ({"consultant_id": 0}, Code.CONSULTANT_ID_IS_NOT_POSITIVE),
    ({"consultant_id": USER_ACCOUNT_ID}, Code.CONSULTANT_IS_THE_SAME_AS_USER_ACCOUNT),
    ({"consultant_id": 99}, Code.CONSULTANT_IS_NOT_AVAILABLE),
    ({"card_token": " "}, Code.INVALID_CARD_TOKEN),
    ({"candidates": candidates(10, 11, 6)}, Code.ILLEGAL_CONSULTATION_HOUR),
    ({"candidates": candidates(10, 10, 12)}, Code.DUPLICATE_DATE_TIME_CANDIDATES),
    ({"candidates": candidates(10, 11, 12, day=3)}, Code.INVALID_CONSULTATION_DATE_TIME),
    ({"candidates": candidates(10, 11, 12, day=8)}, Code.INVALID_CONSULTATION_DATE_TIME),
    ({"candidates": candidates(10, 11, 12, day=31)}, Code.ILLEGAL_CONSULTATION_DATE_TIME),
])
def test_invalid_requests(service, overrides, code):
    with pytest.raises(ApiError) as exc:
        request(service, **overrides)
    assert exc.value.code == code


def test_accept_creates_consultation_and_settlement(db, service, policy):
    charge_id = request(service)
    req_id = db.query(ConsultationRequest).one().id

    consultation_id = service.accept_consultation_request(CONSULTANT_ID, req_id, 2, True, NOW)

    consultation = db.query(Consultation).filter(Consultation.id == consultation_id).one()
    assert consultation.meeting_at == datetime(2023, 6, 5, 11, 0, tzinfo=JST)
    assert consultation.user_account_id == USER_ACCOUNT_ID
    assert len(consultation.room_name) == 32
    settlement = db.query(Settlement).one()
    assert settlement.charge_id == charge_id
    assert settlement.platform_fee_rate_in_percentage == Decimal("30.00")
    assert settlement.credit_facilities_expired_at == NOW + timedelta(days=7)
    assert db.query(UserRating).one().rating is None
    assert db.query(ConsultantRating).one().rating is None
    assert db.query(ConsultationRequest).count() == 0


@pytest.mark.parametrize("consultant_id,req_id,picked,checked,code", [
    (CONSULTANT_ID, None, 0, True, Code.INVALID_CANDIDATE),
    (CONSULTANT_ID, None, 4, True, Code.INVALID_CANDIDATE),
    (CONSULTANT_ID, None, 1, False, Code.USER_DOES_NOT_CHECK_CONFIRMATION_ITEMS),
    (CONSULTANT_ID, 0, 1, True, Code.CONSULTATION_REQ_ID_IS_NOT_POSITIVE),
    (CONSULTANT_ID, 999, 1, True, Code.NO_CONSULTATION_REQ_FOUND),
    (USER_ACCOUNT_ID, None, 1, True, Code.NO_CONSULTATION_REQ_FOUND),
])
def test_invalid_acceptance(db, service, consultant_id, req_id, picked, checked, code):
    request(service)
    if req_id is None:
        req_id = db.query(ConsultationRequest).one().id
    with pytest.raises(ApiError) as exc:
        service.accept_consultation_request(consultant_id, req_id, picked, checked, NOW)
    assert exc.value.code == code
    assert db.query(ConsultationRequest).count() == 1


def test_accept_too_close_to_meeting(db, service):
    request(service)
    req_id = db.query(ConsultationRequest).one().id
    with pytest.raises(ApiError) as exc:
        service.accept_consultation_request(
            CONSULTANT_ID, req_id, 1, True, datetime(2023, 6, 5, 4, 0, tzinfo=JST)
        )
    assert exc.value.code == Code.NO_ENOUGH_SPARE_TIME_BEFORE_MEETING


def test_consultant_already_booked(db, seed, service):
    seed.consultation(consultation_id=50, user_account_id=77, meeting_at=datetime(2023, 6, 5, 10, 0, tzinfo=JST))
    request(service)
    req_id = db.query(ConsultationRequest).one().id
    with pytest.raises(ApiError) as exc:
        service.accept_consultation_request(CONSULTANT_ID, req_id, 1, True, NOW)
    assert exc.value.code == Code.CONSULTANT_HAS_SAME_MEETING_DATE_TIME


def test_delete_expired_consultation_reqs(db, service, gateway):
    request(service)
    request(service, candidates=candidates(10, 11, 12, day=6))

    # six hours before the last candidate of the first request
    deleted, failed = service.delete_expired_consultation_reqs(datetime(2023, 6, 5, 6, 0, tzinfo=JST))

    assert (deleted, failed) == (1, [])
    assert db.query(ConsultationRequest).one().latest_candidate_date_time == datetime(2023, 6, 6, 12, 0, tzinfo=JST)
    assert [call["charge_id"] for call in gateway.calls_of("refund")] == ["ch_fake_1"]


def test_request_consultation_endpoint(client, seed, clock, user_headers, consultant_headers):
    seed.consultant()
    clock.now = NOW
    body = {
        "consultant_id": CONSULTANT_ID,
        "fee_per_hour_in_yen": 5000,
        "card_token": "tok_123",
        "first_candidate_in_jst": {"year": 2023, "month": 6, "day": 5, "hour": 10},
        "second_candidate_in_jst": {"year": 2023, "month": 6, "day": 5, "hour": 11},
        "third_candidate_in_jst": {"year": 2023, "month": 6, "day": 5, "hour": 12},
    }
    response = client.post("/api/consultation/request-consultation", json=body, headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"charge_id": "ch_fake_1"}

    response = client.post(
        "/api/consultation/consultation-request-acceptance",
        json={"consultation_req_id": 1, "picked_candidate": 3, "user_checked": True},
        headers=consultant_headers,
    )
    assert response.status_code == 200
    assert response.json()["consultation_id"] > 0
