"""
Admin routes for captured fees and payouts.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from consult_settlement.api.dependencies import (
    AuthenticatedAccount, get_current_admin, get_current_time,
    get_payout_service, get_settlement_policy
)
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.db.session import get_db
from consult_settlement.models.payout import (
    AwaitingWithdrawal, LeftAwaitingWithdrawal, NeglectedPayment,
    ReceiptOfConsultation, RefundedPayment
)
from consult_settlement.schemas.payout import (
    AwaitingPaymentList, AwaitingPaymentResult, AwaitingWithdrawalList, AwaitingWithdrawalResult,
    ConsultationIdRequest, LeftAwaitingWithdrawalList, LeftAwaitingWithdrawalResult,
    NeglectedPaymentList, NeglectedPaymentResult, ReceiptOfConsultationList,
    ReceiptOfConsultationResult, RefundedPaymentList, RefundedPaymentResult
)
from consult_settlement.services import query_service
from consult_settlement.services.payout_service import PayoutService

router = APIRouter(prefix="/admin", tags=["admin-payout"])


@router.get("/awaiting-payments", response_model=AwaitingPaymentList)
def get_awaiting_payments(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    """List captured fees waiting for confirmation, oldest meeting first."""
    return AwaitingPaymentList(
        awaiting_payments=query_service.list_awaiting_payments(db, page, per_page, policy)
    )


@router.get("/awaiting-payment", response_model=AwaitingPaymentResult)
def get_awaiting_payment(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return AwaitingPaymentResult(awaiting_payment=query_service.find_awaiting_payment(db, consultation_id))


@router.get("/awaiting-withdrawals", response_model=AwaitingWithdrawalList)
def get_awaiting_withdrawals(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    rows = query_service.list_payout_rows(db, AwaitingWithdrawal, page, per_page, policy, newest_first=False)
    return {"awaiting_withdrawals": rows}


@router.get("/awaiting-withdrawal", response_model=AwaitingWithdrawalResult)
def get_awaiting_withdrawal(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    row = query_service.find_payout_row(db, AwaitingWithdrawal, consultation_id)
    return {"awaiting_withdrawal": row}


@router.get("/receipts-of-consultation", response_model=ReceiptOfConsultationList)
def get_receipts_of_consultation(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    rows = query_service.list_payout_rows(db, ReceiptOfConsultation, page, per_page, policy)
    return {"receipts_of_consultation": rows}


@router.get("/receipt-of-consultation", response_model=ReceiptOfConsultationResult)
def get_receipt_of_consultation(
    consultation_id: Optional[int] = None,
    user_account_id: Optional[int] = None,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Get a completed payout.

    Looked up by consultation_id, or by user_account_id for the most recent
    payout made to that consultant. Exactly one of them has to be given.
    """
    if (consultation_id is None) == (user_account_id is None):
        raise ApiError(Code.INVALID_QUERY_PARAMETER)
    if consultation_id is not None:
        row = query_service.find_payout_row(db, ReceiptOfConsultation, consultation_id)
    else:
        row = query_service.find_latest_receipt_of_consultation_by_user_account_id(db, user_account_id)
    return {"receipt_of_consultation": row}


@router.get("/left-awaiting-withdrawals", response_model=LeftAwaitingWithdrawalList)
def get_left_awaiting_withdrawals(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    rows = query_service.list_payout_rows(db, LeftAwaitingWithdrawal, page, per_page, policy)
    return {"left_awaiting_withdrawals": rows}


@router.get("/left-awaiting-withdrawal", response_model=LeftAwaitingWithdrawalResult)
def get_left_awaiting_withdrawal(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    row = query_service.find_payout_row(db, LeftAwaitingWithdrawal, consultation_id)
    return {"left_awaiting_withdrawal": row}


@router.get("/neglected-payments", response_model=NeglectedPaymentList)
def get_neglected_payments(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    rows = query_service.list_payout_rows(db, NeglectedPayment, page, per_page, policy)
    return {"neglected_payments": rows}


@router.get("/neglected-payment", response_model=NeglectedPaymentResult)
def get_neglected_payment(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    row = query_service.find_payout_row(db, NeglectedPayment, consultation_id)
    return {"neglected_payment": row}


@router.get("/refunded-payments", response_model=RefundedPaymentList)
def get_refunded_payments(
    page: int = Query(0, ge=0),
    per_page: int = Query(...),
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    db: Session = Depends(get_db)
):
    rows = query_service.list_payout_rows(db, RefundedPayment, page, per_page, policy)
    return {"refunded_payments": rows}


@router.get("/refunded-payment", response_model=RefundedPaymentResult)
def get_refunded_payment(
    consultation_id: int,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    row = query_service.find_payout_row(db, RefundedPayment, consultation_id)
    return {"refunded_payment": row}


@router.post("/awaiting-withdrawal")
def post_awaiting_withdrawal(
    req: ConsultationIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: PayoutService = Depends(get_payout_service)
):
    """Confirm the payment of a consultation fee."""
    service.confirm_payment(req.consultation_id, current_admin.email, current_time)
    return {}


@router.post("/receipt-of-consultation")
def post_receipt_of_consultation(
    req: ConsultationIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: PayoutService = Depends(get_payout_service)
):
    """Record a completed payout to the consultant."""
    service.receipt_of_consultation(req.consultation_id, current_admin.email, current_time)
    return {}


@router.post("/left-awaiting-withdrawal")
def post_left_awaiting_withdrawal(
    req: ConsultationIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: PayoutService = Depends(get_payout_service)
):
    service.leave_awaiting_withdrawal(req.consultation_id, current_admin.email, current_time)
    return {}


@router.post("/neglected-payment")
def post_neglected_payment(
    req: ConsultationIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: PayoutService = Depends(get_payout_service)
):
    service.neglect_payment(req.consultation_id, current_admin.email, current_time)
    return {}


@router.post("/refund-from-awaiting-withdrawal")
def post_refund_from_awaiting_withdrawal(
    req: ConsultationIdRequest,
    current_admin: AuthenticatedAccount = Depends(get_current_admin),
    current_time: datetime = Depends(get_current_time),
    service: PayoutService = Depends(get_payout_service)
):
    """Return the fee to the requester."""
    service.refund_from_awaiting_withdrawal(req.consultation_id, current_admin.email, current_time)
    return {}
