"""
Settlement state machine: moves of a consultation's card hold.

Settlement -> StoppedSettlement      (stop_settlement)
StoppedSettlement -> Settlement      (resume_settlement)
Settlement -> AwaitingPayment        (make_payment, captures the hold)
Settlement -> RefundedPayment        (refund_settlement, releases the hold)
"""
from datetime import datetime
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.core.errors import ApiError, Code, RowNotFoundError, UnexpectedError
from consult_settlement.db.locking import delete_moved_row, find_with_exclusive_lock
from consult_settlement.db.session import transaction
from consult_settlement.models.consultation import Consultation
from consult_settlement.models.payout import AwaitingPayment, RefundedPayment
from consult_settlement.models.settlement import Receipt, Refund, Settlement, StoppedSettlement
from consult_settlement.services.rating_service import is_fully_rated

logger = logging.getLogger(__name__)

# Recorded as the confirming party when a batch job performs the move
SYSTEM_OPERATOR = "system"


def ensure_settlement_id_is_positive(settlement_id: int) -> None:
    if settlement_id <= 0:
        logger.error(f"settlement_id ({settlement_id}) is not positive")
        raise ApiError(Code.SETTLEMENT_ID_IS_NOT_POSITIVE)


def ensure_stopped_settlement_id_is_positive(stopped_settlement_id: int) -> None:
    if stopped_settlement_id <= 0:
        logger.error(f"stopped_settlement_id ({stopped_settlement_id}) is not positive")
        raise ApiError(Code.STOPPED_SETTLEMENT_ID_IS_NOT_POSITIVE)


def ensure_credit_facilities_are_available(
    credit_facilities_expired_at: datetime,
    current_time: datetime
) -> None:
    if current_time > credit_facilities_expired_at:
        logger.error(
            f"credit facilities already expired (credit_facilities_expired_at: "
            f"{credit_facilities_expired_at}, current_time: {current_time})"
        )
        raise ApiError(Code.CREDIT_FACILITIES_ALREADY_EXPIRED)


class SettlementService:
    """Moves settlements between their states."""

    def __init__(self, db: Session, policy: SettlementPolicy, payment_gateway):
        self.db = db
        self.policy = policy
        self.payment_gateway = payment_gateway

    def stop_settlement(self, settlement_id: int, current_time: datetime) -> None:
        """Divert a settlement whose consultation looks anomalous."""
        ensure_settlement_id_is_positive(settlement_id)
        with transaction(self.db):
            settlement = self._lock_settlement(settlement_id)
            consultation_id = settlement.consultation_id
            self.db.add(StoppedSettlement(
                consultation_id=settlement.consultation_id,
                charge_id=settlement.charge_id,
                fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
                platform_fee_rate_in_percentage=settlement.platform_fee_rate_in_percentage,
                credit_facilities_expired_at=settlement.credit_facilities_expired_at,
                stopped_at=current_time,
            ))
            delete_moved_row(self.db, Settlement, Settlement.id == settlement_id)
        logger.info(f"settlement ({settlement_id}) of consultation ({consultation_id}) stopped")

    def resume_settlement(self, stopped_settlement_id: int, current_time: datetime) -> None:
        """Put a stopped settlement back while its card hold is still valid."""
        ensure_stopped_settlement_id_is_positive(stopped_settlement_id)

        expired_at = self.db.query(StoppedSettlement.credit_facilities_expired_at).filter(
            StoppedSettlement.id == stopped_settlement_id
        ).scalar()
        if expired_at is None:
            raise RowNotFoundError(f"no stopped_settlement ({stopped_settlement_id}) found")
        ensure_credit_facilities_are_available(expired_at, current_time)

        with transaction(self.db):
            stopped = find_with_exclusive_lock(
                self.db, StoppedSettlement, StoppedSettlement.id == stopped_settlement_id
            )
            if stopped is None:
                raise RowNotFoundError(f"no stopped_settlement ({stopped_settlement_id}) found")
            consultation_id = stopped.consultation_id
            self.db.add(Settlement(
                consultation_id=stopped.consultation_id,
                charge_id=stopped.charge_id,
                fee_per_hour_in_yen=stopped.fee_per_hour_in_yen,
                platform_fee_rate_in_percentage=stopped.platform_fee_rate_in_percentage,
                credit_facilities_expired_at=stopped.credit_facilities_expired_at,
            ))
            delete_moved_row(self.db, StoppedSettlement, StoppedSettlement.id == stopped_settlement_id)
        logger.info(f"stopped_settlement ({stopped_settlement_id}) of consultation ({consultation_id}) resumed")

    def make_payment(self, settlement_id: int, current_time: datetime, require_ratings: bool = True) -> None:
        """
        Capture the card hold and move the settlement to AwaitingPayment.

        The capture runs inside the transaction, so a platform failure leaves
        the settlement where it was. require_ratings is relaxed only for
        settlements left unhandled long after the meeting.
        """
        ensure_settlement_id_is_positive(settlement_id)

        settlement = self.db.query(Settlement).filter(Settlement.id == settlement_id).first()
        if settlement is None:
            raise RowNotFoundError(f"no settlement ({settlement_id}) found")
        ensure_credit_facilities_are_available(settlement.credit_facilities_expired_at, current_time)
        consultation = self._find_consultation(settlement.consultation_id)
        end_of_consultation = consultation.meeting_at + self.policy.length_of_meeting
        if current_time <= end_of_consultation:
            logger.error(
                f"end of consultation ({end_of_consultation}) of settlement ({settlement_id}) has not passed yet"
            )
            raise ApiError(Code.END_OF_CONSULTATION_DATE_TIME_HAS_NOT_PASSED_YET)
        if require_ratings and not is_fully_rated(self.db, consultation.id):
            logger.error(f"consultation ({consultation.id}) has not been rated by both parties yet")
            raise ApiError(Code.CONSULTATION_HAS_NOT_BEEN_RATED_YET)

        consultation_id = consultation.id
        with transaction(self.db):
            settlement = self._lock_settlement(settlement_id)
            charge_id = settlement.charge_id
            self.db.add(AwaitingPayment(
                consultation_id=consultation.id,
                consultant_id=consultation.consultant_id,
                user_account_id=consultation.user_account_id,
                meeting_at=consultation.meeting_at,
                fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
                created_at=current_time,
            ))
            self.db.add(Receipt(
                consultation_id=consultation.id,
                charge_id=settlement.charge_id,
                fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
                platform_fee_rate_in_percentage=settlement.platform_fee_rate_in_percentage,
                settled_at=current_time,
            ))
            delete_moved_row(self.db, Settlement, Settlement.id == settlement_id)
            self.db.flush()
            self.payment_gateway.capture(charge_id)
        logger.info(f"charge ({charge_id}) of consultation ({consultation_id}) captured")

    def refund_settlement(
        self,
        settlement_id: int,
        reason: str,
        confirmed_by: str,
        current_time: datetime
    ) -> None:
        """
        Give up on a settlement and return the money to the requester.

        A hold that is still valid is released through the payment platform;
        an expired one has already lapsed on the platform side.
        """
        ensure_settlement_id_is_positive(settlement_id)
        with transaction(self.db):
            settlement = self._lock_settlement(settlement_id)
            consultation = self._find_consultation(settlement.consultation_id)
            consultation_id = consultation.id
            charge_id = settlement.charge_id
            expired_at = settlement.credit_facilities_expired_at
            self.db.add(RefundedPayment(
                consultation_id=consultation.id,
                consultant_id=consultation.consultant_id,
                user_account_id=consultation.user_account_id,
                meeting_at=consultation.meeting_at,
                fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
                sender_name=None,
                transfer_fee_in_yen=0,
                reason=reason,
                refund_confirmed_by=confirmed_by,
                created_at=current_time,
            ))
            self.db.add(Refund(
                consultation_id=consultation.id,
                charge_id=settlement.charge_id,
                fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
                platform_fee_rate_in_percentage=settlement.platform_fee_rate_in_percentage,
                refunded_at=current_time,
            ))
            delete_moved_row(self.db, Settlement, Settlement.id == settlement_id)
            self.db.flush()
            if current_time <= expired_at:
                self.payment_gateway.refund(charge_id, reason)
        logger.info(f"settlement ({settlement_id}) of consultation ({consultation_id}) refunded: {reason}")

    def _lock_settlement(self, settlement_id: int) -> Settlement:
        settlement = find_with_exclusive_lock(self.db, Settlement, Settlement.id == settlement_id)
        if settlement is None:
            raise RowNotFoundError(f"no settlement ({settlement_id}) found")
        return settlement

    def _find_consultation(self, consultation_id: int) -> Consultation:
        consultation = self.db.query(Consultation).filter(Consultation.id == consultation_id).first()
        if consultation is None:
            raise UnexpectedError(f"no consultation ({consultation_id}) found for settlement")
        return consultation
