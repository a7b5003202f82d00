"""
Jobs run by an external scheduler.

Each job processes its targets one transaction at a time. A failure on one
target is logged and reported at the end without stopping the others.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.db.locking import delete_moved_row, find_with_exclusive_lock
from consult_settlement.db.session import transaction
from consult_settlement.models.consultation import Consultation, ConsultantRating, UserRating
from consult_settlement.models.settlement import Settlement, StoppedSettlement
from consult_settlement.services.consultation_request_service import ConsultationRequestService
from consult_settlement.services.settlement_service import SYSTEM_OPERATOR, SettlementService

logger = logging.getLogger(__name__)

REFUND_REASON_FOR_EXPIRED_CREDIT_FACILITIES = "credit facilities expired before settlement"


@dataclass
class BatchResult:
    """Outcome of one job run."""
    job: str
    processed: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_ids


class BatchService:
    def __init__(self, db: Session, policy: SettlementPolicy, payment_gateway):
        self.db = db
        self.policy = policy
        self.payment_gateway = payment_gateway
        self.settlement_service = SettlementService(db, policy, payment_gateway)

    def make_payment_of_unhandled_settlements(self, current_time: datetime) -> BatchResult:
        """
        Capture settlements whose meeting is over.

        A settlement qualifies once both parties have rated. Unrated ones are
        captured when nobody handled them for DURATION_ALLOWED_AS_UNHANDLED_IN_DAYS
        after the meeting, or when their hold expires within
        CAPTURE_MARGIN_BEFORE_EXPIRY_IN_HOURS, whichever comes first.
        """
        result = BatchResult(job="make_payment_of_unhandled_settlements")
        end_of_meeting = current_time - self.policy.length_of_meeting
        unhandled_before = end_of_meeting - timedelta(days=self.policy.duration_allowed_as_unhandled_in_days)
        expiring_by = current_time + timedelta(hours=self.policy.capture_margin_before_expiry_in_hours)

        query = self.db.query(Settlement.id, Consultation.meeting_at).join(
            Consultation, Consultation.id == Settlement.consultation_id
        ).outerjoin(
            UserRating, UserRating.consultation_id == Settlement.consultation_id
        ).outerjoin(
            ConsultantRating, ConsultantRating.consultation_id == Settlement.consultation_id
        ).filter(
            Settlement.credit_facilities_expired_at >= current_time,
            Consultation.meeting_at < end_of_meeting,
            or_(
                and_(UserRating.rating.isnot(None), ConsultantRating.rating.isnot(None)),
                Consultation.meeting_at < unhandled_before,
                Settlement.credit_facilities_expired_at <= expiring_by,
            )
        ).order_by(Consultation.meeting_at.asc())
        for settlement_id, meeting_at in self._limited(query):
            try:
                self.settlement_service.make_payment(settlement_id, current_time, require_ratings=False)
                result.processed += 1
            except Exception as e:
                logger.error(f"failed to make payment of settlement ({settlement_id}, meeting_at: {meeting_at}): {e}")
                result.failed_ids.append(settlement_id)
        return self._report(result)

    def refund_expired_settlements(self, current_time: datetime) -> BatchResult:
        """Settlements whose hold lapsed can no longer be captured."""
        result = BatchResult(job="refund_expired_settlements")
        query = self.db.query(Settlement.id).filter(
            Settlement.credit_facilities_expired_at < current_time
        ).order_by(Settlement.id.asc())
        for (settlement_id,) in self._limited(query):
            try:
                self.settlement_service.refund_settlement(
                    settlement_id, REFUND_REASON_FOR_EXPIRED_CREDIT_FACILITIES, SYSTEM_OPERATOR, current_time
                )
                result.processed += 1
            except Exception as e:
                logger.error(f"failed to refund expired settlement ({settlement_id}): {e}")
                result.failed_ids.append(settlement_id)
        return self._report(result)

    def delete_expired_stopped_settlements(self, current_time: datetime) -> BatchResult:
        result = BatchResult(job="delete_expired_stopped_settlements")
        query = self.db.query(StoppedSettlement.id).filter(
            StoppedSettlement.credit_facilities_expired_at < current_time
        ).order_by(StoppedSettlement.id.asc())
        for (stopped_settlement_id,) in self._limited(query):
            try:
                with transaction(self.db):
                    stopped = find_with_exclusive_lock(
                        self.db, StoppedSettlement, StoppedSettlement.id == stopped_settlement_id
                    )
                    if stopped is None:
                        continue
                    logger.info(
                        f"deleting expired stopped_settlement ({stopped_settlement_id}) "
                        f"of consultation ({stopped.consultation_id})"
                    )
                    delete_moved_row(self.db, StoppedSettlement, StoppedSettlement.id == stopped_settlement_id)
                result.processed += 1
            except Exception as e:
                logger.error(f"failed to delete expired stopped_settlement ({stopped_settlement_id}): {e}")
                result.failed_ids.append(stopped_settlement_id)
        return self._report(result)

    def delete_expired_consultation_reqs(self, current_time: datetime) -> BatchResult:
        result = BatchResult(job="delete_expired_consultation_reqs")
        service = ConsultationRequestService(self.db, self.policy, self.payment_gateway)
        result.processed, result.failed_ids = service.delete_expired_consultation_reqs(current_time)
        return self._report(result)

    def _limited(self, query) -> list:
        if self.policy.num_of_max_target_records > 0:
            query = query.limit(self.policy.num_of_max_target_records)
        return query.all()

    def _report(self, result: BatchResult) -> BatchResult:
        if result.failed_ids:
            logger.error(f"{result.job}: {result.processed} processed, failed ids: {result.failed_ids}")
        else:
            logger.info(f"{result.job}: {result.processed} processed")
        return result
