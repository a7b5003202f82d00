"""
Consultation requests: the card hold is placed when a user asks a consultant
for a meeting, and turned into a settlement when the consultant accepts.
"""
from datetime import datetime, timedelta
from typing import List
from uuid import uuid4
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import JAPANESE_TIME_ZONE, SettlementPolicy
from consult_settlement.core.errors import ApiError, Code, RowNotFoundError
from consult_settlement.db.locking import delete_moved_row, find_with_exclusive_lock
from consult_settlement.db.session import transaction
from consult_settlement.models.account import ConsultingFee, Tenant
from consult_settlement.models.consultation import (
    Consultation, ConsultationRequest, ConsultantRating, UserRating
)
from consult_settlement.models.settlement import Settlement
from consult_settlement.schemas.consultation import ConsultationDateTime

logger = logging.getLogger(__name__)

NUM_OF_CANDIDATES = 3


def to_meeting_date_time(
    candidate: ConsultationDateTime,
    current_time: datetime,
    policy: SettlementPolicy
) -> datetime:
    """Validate a JST candidate and return it as an aware datetime."""
    try:
        meeting_at = datetime(
            candidate.year, candidate.month, candidate.day, candidate.hour,
            tzinfo=JAPANESE_TIME_ZONE
        )
    except ValueError:
        logger.error(f"illegal consultation date time: {candidate}")
        raise ApiError(Code.ILLEGAL_CONSULTATION_DATE_TIME)

    if not (policy.first_start_hour_of_consultation <= candidate.hour <= policy.last_start_hour_of_consultation):
        logger.error(f"illegal consultation hour: {candidate.hour}")
        raise ApiError(Code.ILLEGAL_CONSULTATION_HOUR)

    earliest = current_time + timedelta(seconds=policy.min_duration_before_consultation_in_seconds)
    latest = current_time + timedelta(seconds=policy.max_duration_before_consultation_in_seconds)
    if not (earliest <= meeting_at <= latest):
        logger.error(f"consultation date time ({meeting_at}) is not between {earliest} and {latest}")
        raise ApiError(Code.INVALID_CONSULTATION_DATE_TIME)
    return meeting_at


class ConsultationRequestService:
    """Request and acceptance of consultations."""

    def __init__(self, db: Session, policy: SettlementPolicy, payment_gateway):
        self.db = db
        self.policy = policy
        self.payment_gateway = payment_gateway

    def request_consultation(
        self,
        user_account_id: int,
        consultant_id: int,
        fee_per_hour_in_yen: int,
        card_token: str,
        candidates: List[ConsultationDateTime],
        current_time: datetime
    ) -> str:
        """Place a card hold for the consultant's fee and record the request. Returns the charge id."""
        if consultant_id <= 0:
            logger.error(f"consultant_id ({consultant_id}) is not positive")
            raise ApiError(Code.CONSULTANT_ID_IS_NOT_POSITIVE)
        if consultant_id == user_account_id:
            logger.error(f"user account ({user_account_id}) requested a consultation with themselves")
            raise ApiError(Code.CONSULTANT_IS_THE_SAME_AS_USER_ACCOUNT)
        if not card_token.strip():
            raise ApiError(Code.INVALID_CARD_TOKEN)

        meeting_date_times = [to_meeting_date_time(c, current_time, self.policy) for c in candidates]
        if len(set(meeting_date_times)) != NUM_OF_CANDIDATES:
            logger.error(f"duplicate candidates: {meeting_date_times}")
            raise ApiError(Code.DUPLICATE_DATE_TIME_CANDIDATES)

        consulting_fee = self.db.query(ConsultingFee).filter(ConsultingFee.consultant_id == consultant_id).first()
        tenant = self.db.query(Tenant).filter(Tenant.consultant_id == consultant_id).first()
        if consulting_fee is None or tenant is None:
            logger.error(f"consultant ({consultant_id}) is not available")
            raise ApiError(Code.CONSULTANT_IS_NOT_AVAILABLE)
        if consulting_fee.fee_per_hour_in_yen != fee_per_hour_in_yen:
            logger.error(
                f"fee of consultant ({consultant_id}) was updated "
                f"(requested: {fee_per_hour_in_yen}, current: {consulting_fee.fee_per_hour_in_yen})"
            )
            raise ApiError(Code.FEE_PER_HOUR_IN_YEN_WAS_UPDATED)

        charge = self.payment_gateway.create_hold(
            amount=fee_per_hour_in_yen,
            card_token=card_token,
            tenant_id=tenant.tenant_id,
            expiry_days=self.policy.expiry_days_of_charge,
            metadata={"user_account_id": user_account_id, "consultant_id": consultant_id},
        )
        expired_at = charge.expired_at or current_time + timedelta(days=self.policy.expiry_days_of_charge)

        with transaction(self.db):
            self.db.add(ConsultationRequest(
                user_account_id=user_account_id,
                consultant_id=consultant_id,
                fee_per_hour_in_yen=fee_per_hour_in_yen,
                first_candidate_date_time=meeting_date_times[0],
                second_candidate_date_time=meeting_date_times[1],
                third_candidate_date_time=meeting_date_times[2],
                latest_candidate_date_time=max(meeting_date_times),
                charge_id=charge.id,
                credit_facilities_expired_at=expired_at,
                created_at=current_time,
            ))
        logger.info(f"consultation request from {user_account_id} to {consultant_id} held charge ({charge.id})")
        return charge.id

    def accept_consultation_request(
        self,
        consultant_id: int,
        consultation_req_id: int,
        picked_candidate: int,
        user_checked: bool,
        current_time: datetime
    ) -> int:
        """Turn the request into a consultation and its settlement. Returns the consultation id."""
        if picked_candidate < 1 or picked_candidate > NUM_OF_CANDIDATES:
            logger.error(f"invalid candidate ({picked_candidate})")
            raise ApiError(Code.INVALID_CANDIDATE)
        if not user_checked:
            raise ApiError(Code.USER_DOES_NOT_CHECK_CONFIRMATION_ITEMS)
        if consultation_req_id <= 0:
            logger.error(f"consultation_req_id ({consultation_req_id}) is not positive")
            raise ApiError(Code.CONSULTATION_REQ_ID_IS_NOT_POSITIVE)

        with transaction(self.db):
            req = find_with_exclusive_lock(
                self.db, ConsultationRequest, ConsultationRequest.id == consultation_req_id
            )
            if req is None or req.consultant_id != consultant_id:
                logger.error(f"no consultation request ({consultation_req_id}) for consultant ({consultant_id}) found")
                raise ApiError(Code.NO_CONSULTATION_REQ_FOUND)

            meeting_at = req.candidate(picked_candidate)
            deadline = current_time + timedelta(seconds=self.policy.min_duration_before_consultation_acceptance_in_seconds)
            if meeting_at <= deadline:
                logger.error(f"no enough spare time before meeting ({meeting_at}, current time: {current_time})")
                raise ApiError(Code.NO_ENOUGH_SPARE_TIME_BEFORE_MEETING)
            self._ensure_no_same_meeting_date_time(req, meeting_at)

            consultation = Consultation(
                user_account_id=req.user_account_id,
                consultant_id=req.consultant_id,
                meeting_at=meeting_at,
                room_name=uuid4().hex,
                created_at=current_time,
            )
            self.db.add(consultation)
            self.db.flush()
            consultation_id = consultation.id
            self.db.add(UserRating(consultation_id=consultation_id))
            self.db.add(ConsultantRating(consultation_id=consultation_id))
            self.db.add(Settlement(
                consultation_id=consultation_id,
                charge_id=req.charge_id,
                fee_per_hour_in_yen=req.fee_per_hour_in_yen,
                platform_fee_rate_in_percentage=self.policy.platform_fee_rate_in_percentage,
                credit_facilities_expired_at=req.credit_facilities_expired_at,
            ))
            try:
                delete_moved_row(self.db, ConsultationRequest, ConsultationRequest.id == consultation_req_id)
            except RowNotFoundError:
                raise ApiError(Code.NO_CONSULTATION_REQ_FOUND)
        logger.info(f"consultation request ({consultation_req_id}) accepted as consultation ({consultation_id})")
        return consultation_id

    def delete_expired_consultation_reqs(self, current_time: datetime) -> tuple:
        """
        Drop requests that can no longer be accepted and release their holds.

        Returns (number of deleted requests, list of failed request ids).
        """
        deadline = current_time + timedelta(seconds=self.policy.min_duration_before_consultation_acceptance_in_seconds)
        query = self.db.query(ConsultationRequest.id).filter(
            ConsultationRequest.latest_candidate_date_time <= deadline
        ).order_by(ConsultationRequest.id.asc())
        if self.policy.num_of_max_target_records > 0:
            query = query.limit(self.policy.num_of_max_target_records)
        target_ids = [row.id for row in query.all()]

        deleted, failed = 0, []
        for consultation_req_id in target_ids:
            try:
                with transaction(self.db):
                    req = find_with_exclusive_lock(
                        self.db, ConsultationRequest, ConsultationRequest.id == consultation_req_id
                    )
                    if req is None:
                        continue
                    charge_id = req.charge_id
                    delete_moved_row(self.db, ConsultationRequest, ConsultationRequest.id == consultation_req_id)
                    self.db.flush()
                    self.payment_gateway.refund(charge_id, "consultation request expired")
                deleted += 1
            except Exception as e:
                logger.error(f"failed to delete expired consultation request ({consultation_req_id}): {e}")
                failed.append(consultation_req_id)
        return deleted, failed

    def _ensure_no_same_meeting_date_time(self, req: ConsultationRequest, meeting_at: datetime) -> None:
        if self.db.query(Consultation.id).filter(
            Consultation.consultant_id == req.consultant_id,
            Consultation.meeting_at == meeting_at
        ).first():
            logger.error(f"consultant ({req.consultant_id}) already has a consultation at {meeting_at}")
            raise ApiError(Code.CONSULTANT_HAS_SAME_MEETING_DATE_TIME)
        if self.db.query(Consultation.id).filter(
            Consultation.user_account_id == req.user_account_id,
            Consultation.meeting_at == meeting_at
        ).first():
            logger.error(f"user account ({req.user_account_id}) already has a consultation at {meeting_at}")
            raise ApiError(Code.USER_HAS_SAME_MEETING_DATE_TIME)
