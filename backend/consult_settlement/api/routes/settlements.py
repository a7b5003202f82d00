"""
Admin routes for settlements, their projections and consultation details.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from consult_settlement.api.dependencies import (
    AuthenticatedAccount, get_current_admin, get_current_time, get_settlement_service
)
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.db.session import get_db
from consult_settlement.schemas.consultation import ConsultationResult
from consult_settlement.schemas.rating import ConsultantRatingResult, UserRatingResult
from consult_settlement.schemas.settlement import (
    ReceiptResult, RefundResult, RefundSettlementRequest, SettlementIdRequest,
    SettlementResult, StoppedSettlementIdRequest, StoppedSettlementResult
)
from consult_settlement.services import query_service
from consult_settlement.services.rating_service import RatingRole
from consult_settlement.services.settlement_service import SettlementService

router = APIRouter(prefix="/admin", tags=["admin-settlement"])


@router.get("/settlement", response_model=SettlementResult)
def get_settlement(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Get the settlement of a consultation."""
    return SettlementResult(settlement=query_service.find_settlement(db, consultation_id))


@router.get("/stopped-settlement", response_model=StoppedSettlementResult)
def get_stopped_settlement(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return StoppedSettlementResult(stopped_settlement=query_service.find_stopped_settlement(db, consultation_id))


@router.get("/receipt", response_model=ReceiptResult)
def get_receipt(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return ReceiptResult(receipt=query_service.find_receipt(db, consultation_id))


@router.get("/refund", response_model=RefundResult)
def get_refund(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return RefundResult(refund=query_service.find_refund(db, consultation_id))


@router.get("/consultation", response_model=ConsultationResult)
def get_consultation(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Get consultation details."""
    return ConsultationResult(consultation=query_service.find_consultation(db, consultation_id))


def _find_rating(db: Session, role: RatingRole, consultation_id: Optional[int], rating_id: Optional[int]):
    if (consultation_id is None) == (rating_id is None):
        raise ApiError(Code.INVALID_QUERY_PARAMETER)
    if consultation_id is not None:
        return query_service.find_rating(db, role, consultation_id)
    return query_service.find_rating_by_id(db, role, rating_id)


@router.get("/user-rating", response_model=UserRatingResult)
def get_user_rating(
    consultation_id: Optional[int] = None,
    rating_id: Optional[int] = None,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Get the rating of the requester, by consultation_id or rating_id."""
    return UserRatingResult(user_rating=_find_rating(db, RatingRole.USER, consultation_id, rating_id))


@router.get("/consultant-rating", response_model=ConsultantRatingResult)
def get_consultant_rating(
    consultation_id: Optional[int] = None,
    rating_id: Optional[int] = None,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Get the rating of the consultant, by consultation_id or rating_id."""
    return ConsultantRatingResult(
        consultant_rating=_find_rating(db, RatingRole.CONSULTANT, consultation_id, rating_id)
    )


@router.post("/stop-settlement-req")
def stop_settlement(
    req: SettlementIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: SettlementService = Depends(get_settlement_service)
):
    """Stop a settlement of an anomalous consultation."""
    service.stop_settlement(req.settlement_id, current_time)
    return {}


@router.post("/resume-settlement-req")
def resume_settlement(
    req: StoppedSettlementIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: SettlementService = Depends(get_settlement_service)
):
    """Resume a stopped settlement while its card hold is valid."""
    service.resume_settlement(req.stopped_settlement_id, current_time)
    return {}


@router.post("/make-payment-req")
def make_payment(
    req: SettlementIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: SettlementService = Depends(get_settlement_service)
):
    """Capture the card hold of a settlement."""
    service.make_payment(req.settlement_id, current_time)
    return {}


@router.post("/refund-settlement-req")
def refund_settlement(
    req: RefundSettlementRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: SettlementService = Depends(get_settlement_service)
):
    """Release the card hold of a settlement and record the refund."""
    service.refund_settlement(req.settlement_id, req.reason, current_admin.email, current_time)
    return {}
