"""Models package - Import all models for SQLAlchemy registration."""
from consult_settlement.models.account import BankAccount, ConsultingFee, Identity, Tenant
from consult_settlement.models.consultation import (
    Consultation, ConsultationRequest, ConsultantRating, UserRating
)
from consult_settlement.models.settlement import Receipt, Refund, Settlement, StoppedSettlement
from consult_settlement.models.payout import (
    AwaitingPayment, AwaitingWithdrawal, LeftAwaitingWithdrawal,
    NeglectedPayment, ReceiptOfConsultation, RefundedPayment
)

__all__ = [
    "BankAccount",
    "ConsultingFee",
    "Identity",
    "Tenant",
    "Consultation",
    "ConsultationRequest",
    "ConsultantRating",
    "UserRating",
    "Settlement",
    "StoppedSettlement",
    "Receipt",
    "Refund",
    "AwaitingPayment",
    "AwaitingWithdrawal",
    "LeftAwaitingWithdrawal",
    "NeglectedPayment",
    "ReceiptOfConsultation",
    "RefundedPayment",
]
