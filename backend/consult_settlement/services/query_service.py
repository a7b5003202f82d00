"""
Read-only lookups behind the admin screens.

Every lookup validates its id before touching the database. Tables that allow
at most one row per consultation treat a second row as corruption.
"""
from typing import List, Optional
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.core.errors import ApiError, Code, UnexpectedError
from consult_settlement.core.utils import generate_sender_name, paginate
from consult_settlement.db.locking import find_at_most_one
from consult_settlement.models.account import Identity
from consult_settlement.models.consultation import Consultation
from consult_settlement.models.payout import AwaitingPayment, ReceiptOfConsultation
from consult_settlement.models.settlement import Receipt, Refund, Settlement, StoppedSettlement
from consult_settlement.schemas.consultation import ConsultationResponse
from consult_settlement.schemas.payout import AwaitingPaymentResponse
from consult_settlement.schemas.rating import RatingResponse
from consult_settlement.schemas.settlement import (
    ReceiptResponse, RefundResponse, SettlementResponse, StoppedSettlementResponse
)
from consult_settlement.services.rating_service import (
    RatingRole, ensure_consultation_id_is_positive,
    find_rating_by_consultation_id, find_rating_by_rating_id
)

logger = logging.getLogger(__name__)


def ensure_page_size_is_exact(per_page: int, policy: SettlementPolicy) -> None:
    if per_page != policy.valid_page_size:
        raise UnexpectedError(f"invalid page size ({per_page}), valid page size is {policy.valid_page_size}")


def ensure_page_size_is_within_limit(per_page: int, policy: SettlementPolicy) -> None:
    if per_page <= 0 or per_page > policy.valid_page_size:
        raise UnexpectedError(f"invalid page size ({per_page}), maximum page size is {policy.valid_page_size}")


def list_awaiting_payments(db: Session, page: int, per_page: int, policy: SettlementPolicy) -> List[AwaitingPaymentResponse]:
    """
    Captured fees waiting for confirmation, oldest meeting first.

    sender_name is derived from the requester's identity and is absent when
    the identity has not been registered.
    """
    ensure_page_size_is_exact(per_page, policy)
    query = db.query(AwaitingPayment, Identity).outerjoin(
        Identity, Identity.user_account_id == AwaitingPayment.user_account_id
    ).order_by(AwaitingPayment.meeting_at.asc(), AwaitingPayment.consultation_id.asc())

    results = []
    for awaiting_payment, identity in paginate(query, page, per_page).all():
        sender_name = None
        if identity is not None:
            sender_name = generate_sender_name(
                identity.last_name_furigana, identity.first_name_furigana, awaiting_payment.meeting_at
            )
        item = AwaitingPaymentResponse.model_validate(awaiting_payment)
        item.sender_name = sender_name
        results.append(item)
    return results


def list_payout_rows(
    db: Session,
    model,
    page: int,
    per_page: int,
    policy: SettlementPolicy,
    newest_first: bool = True
) -> list:
    """
    Rows of a payout state table.

    Settled states are listed newest first by the time they were reached.
    Pass newest_first=False for states still waiting on an admin, which are
    worked through oldest meeting first.
    """
    ensure_page_size_is_within_limit(per_page, policy)
    if newest_first:
        query = db.query(model).order_by(model.created_at.desc(), model.consultation_id.desc())
    else:
        query = db.query(model).order_by(model.meeting_at.asc(), model.consultation_id.asc())
    return paginate(query, page, per_page).all()


def find_payout_row(db: Session, model, consultation_id: int):
    """Row of a payout state table keyed by consultation_id, or None."""
    ensure_consultation_id_is_positive(consultation_id)
    return db.query(model).filter(model.consultation_id == consultation_id).first()


def find_awaiting_payment(db: Session, consultation_id: int) -> Optional[AwaitingPaymentResponse]:
    awaiting_payment = find_payout_row(db, AwaitingPayment, consultation_id)
    if awaiting_payment is None:
        return None
    item = AwaitingPaymentResponse.model_validate(awaiting_payment)
    identity = db.query(Identity).filter(Identity.user_account_id == awaiting_payment.user_account_id).first()
    if identity is not None:
        item.sender_name = generate_sender_name(
            identity.last_name_furigana, identity.first_name_furigana, awaiting_payment.meeting_at
        )
    return item


def find_latest_receipt_of_consultation_by_user_account_id(db: Session, user_account_id: int):
    """Most recent payout made to the consultant, or None."""
    if user_account_id <= 0:
        logger.error(f"user_account_id ({user_account_id}) is not positive")
        raise ApiError(Code.USER_ACCOUNT_ID_IS_NOT_POSITIVE)
    return db.query(ReceiptOfConsultation).filter(
        ReceiptOfConsultation.consultant_id == user_account_id
    ).order_by(ReceiptOfConsultation.created_at.desc()).first()


def find_settlement(db: Session, consultation_id: int) -> Optional[SettlementResponse]:
    ensure_consultation_id_is_positive(consultation_id)
    settlement = find_at_most_one(db, Settlement, consultation_id)
    if settlement is None:
        return None
    return SettlementResponse(
        settlement_id=settlement.id,
        consultation_id=settlement.consultation_id,
        charge_id=settlement.charge_id,
        fee_per_hour_in_yen=settlement.fee_per_hour_in_yen,
        platform_fee_rate_in_percentage=settlement.platform_fee_rate_in_percentage,
        credit_facilities_expired_at=settlement.credit_facilities_expired_at,
    )


def find_stopped_settlement(db: Session, consultation_id: int) -> Optional[StoppedSettlementResponse]:
    ensure_consultation_id_is_positive(consultation_id)
    stopped = find_at_most_one(db, StoppedSettlement, consultation_id)
    if stopped is None:
        return None
    return StoppedSettlementResponse(
        stopped_settlement_id=stopped.id,
        consultation_id=stopped.consultation_id,
        charge_id=stopped.charge_id,
        fee_per_hour_in_yen=stopped.fee_per_hour_in_yen,
        platform_fee_rate_in_percentage=stopped.platform_fee_rate_in_percentage,
        credit_facilities_expired_at=stopped.credit_facilities_expired_at,
        stopped_at=stopped.stopped_at,
    )


def find_receipt(db: Session, consultation_id: int) -> Optional[ReceiptResponse]:
    ensure_consultation_id_is_positive(consultation_id)
    receipt = find_at_most_one(db, Receipt, consultation_id)
    if receipt is None:
        return None
    return ReceiptResponse(
        receipt_id=receipt.id,
        consultation_id=receipt.consultation_id,
        charge_id=receipt.charge_id,
        fee_per_hour_in_yen=receipt.fee_per_hour_in_yen,
        platform_fee_rate_in_percentage=receipt.platform_fee_rate_in_percentage,
        settled_at=receipt.settled_at,
    )


def find_refund(db: Session, consultation_id: int) -> Optional[RefundResponse]:
    ensure_consultation_id_is_positive(consultation_id)
    refund = find_at_most_one(db, Refund, consultation_id)
    if refund is None:
        return None
    return RefundResponse(
        refund_id=refund.id,
        consultation_id=refund.consultation_id,
        charge_id=refund.charge_id,
        fee_per_hour_in_yen=refund.fee_per_hour_in_yen,
        platform_fee_rate_in_percentage=refund.platform_fee_rate_in_percentage,
        refunded_at=refund.refunded_at,
    )


def find_consultation(db: Session, consultation_id: int) -> Optional[ConsultationResponse]:
    ensure_consultation_id_is_positive(consultation_id)
    consultation = db.query(Consultation).filter(Consultation.id == consultation_id).first()
    if consultation is None:
        return None
    return ConsultationResponse(
        consultation_id=consultation.id,
        user_account_id=consultation.user_account_id,
        consultant_id=consultation.consultant_id,
        meeting_at=consultation.meeting_at,
        room_name=consultation.room_name,
        user_account_entered_at=consultation.user_account_entered_at,
        consultant_entered_at=consultation.consultant_entered_at,
    )


def find_rating(db: Session, role: RatingRole, consultation_id: int) -> Optional[RatingResponse]:
    return _to_rating_response(find_rating_by_consultation_id(db, role, consultation_id))


def find_rating_by_id(db: Session, role: RatingRole, rating_id: int) -> Optional[RatingResponse]:
    return _to_rating_response(find_rating_by_rating_id(db, role, rating_id))


def _to_rating_response(rating) -> Optional[RatingResponse]:
    if rating is None:
        return None
    return RatingResponse(
        rating_id=rating.id,
        consultation_id=rating.consultation_id,
        rating=rating.rating,
        rated_at=rating.rated_at,
    )
