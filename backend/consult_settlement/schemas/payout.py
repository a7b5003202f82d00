"""
Pydantic schemas for payout states.
"""
from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from consult_settlement.schemas.common import JstDateTime


class ConsultationIdRequest(BaseModel):
    consultation_id: int


class PayoutBase(BaseModel):
    """Columns shared by every payout state."""
    consultation_id: int
    consultant_id: int
    user_account_id: int
    meeting_at: JstDateTime
    fee_per_hour_in_yen: int

    class Config:
        from_attributes = True


class AwaitingPaymentResponse(PayoutBase):
    sender_name: Optional[str] = None


class AwaitingWithdrawalResponse(PayoutBase):
    sender_name: str
    payment_confirmed_by: str
    created_at: JstDateTime


class ReceiptOfConsultationResponse(PayoutBase):
    """Completed payout with the bank account it was sent to."""
    platform_fee_rate_in_percentage: Decimal
    transfer_fee_in_yen: int
    reward: int
    sender_name: str
    bank_code: str
    branch_code: str
    account_type: str
    account_number: str
    account_holder_name: str
    withdrawal_confirmed_by: str
    created_at: JstDateTime


class LeftAwaitingWithdrawalResponse(PayoutBase):
    sender_name: str
    confirmed_by: str
    created_at: JstDateTime


class NeglectedPaymentResponse(PayoutBase):
    sender_name: str
    neglect_confirmed_by: str
    created_at: JstDateTime


class RefundedPaymentResponse(PayoutBase):
    sender_name: Optional[str] = None
    transfer_fee_in_yen: int
    reason: str
    refund_confirmed_by: str
    created_at: JstDateTime


class AwaitingPaymentResult(BaseModel):
    awaiting_payment: Optional[AwaitingPaymentResponse] = None


class AwaitingPaymentList(BaseModel):
    awaiting_payments: List[AwaitingPaymentResponse]


class AwaitingWithdrawalResult(BaseModel):
    awaiting_withdrawal: Optional[AwaitingWithdrawalResponse] = None


class AwaitingWithdrawalList(BaseModel):
    awaiting_withdrawals: List[AwaitingWithdrawalResponse]


class ReceiptOfConsultationResult(BaseModel):
    receipt_of_consultation: Optional[ReceiptOfConsultationResponse] = None


class ReceiptOfConsultationList(BaseModel):
    receipts_of_consultation: List[ReceiptOfConsultationResponse]


class LeftAwaitingWithdrawalResult(BaseModel):
    left_awaiting_withdrawal: Optional[LeftAwaitingWithdrawalResponse] = None


class LeftAwaitingWithdrawalList(BaseModel):
    left_awaiting_withdrawals: List[LeftAwaitingWithdrawalResponse]


class NeglectedPaymentResult(BaseModel):
    neglected_payment: Optional[NeglectedPaymentResponse] = None


class NeglectedPaymentList(BaseModel):
    neglected_payments: List[NeglectedPaymentResponse]


class RefundedPaymentResult(BaseModel):
    refunded_payment: Optional[RefundedPaymentResponse] = None


class RefundedPaymentList(BaseModel):
    refunded_payments: List[RefundedPaymentResponse]
