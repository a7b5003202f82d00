"""
Payout models. Each table is one state of a captured consultation fee,
keyed by consultation_id.
"""
from sqlalchemy import Column, String, Integer, Numeric
from consult_settlement.db.base import Base, UTCDateTime, utc_now


class PayoutStateMixin:
    """Columns shared by every payout state."""
    consultation_id = Column(Integer, primary_key=True, autoincrement=False)
    consultant_id = Column(Integer, nullable=False, index=True)
    user_account_id = Column(Integer, nullable=False, index=True)
    meeting_at = Column(UTCDateTime, nullable=False, index=True)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, default=utc_now, nullable=False)


class AwaitingPayment(PayoutStateMixin, Base):
    """Captured fee waiting for the admin to confirm the transfer arrangement."""
    __tablename__ = "awaiting_payments"


class AwaitingWithdrawal(PayoutStateMixin, Base):
    """Confirmed payment waiting to be paid out to the consultant."""
    __tablename__ = "awaiting_withdrawals"

    sender_name = Column(String(255), nullable=False)
    payment_confirmed_by = Column(String(254), nullable=False)


class ReceiptOfConsultation(PayoutStateMixin, Base):
    """Completed payout, with the bank account it was sent to."""
    __tablename__ = "receipts_of_consultation"

    platform_fee_rate_in_percentage = Column(Numeric(5, 2), nullable=False)
    transfer_fee_in_yen = Column(Integer, nullable=False)
    reward = Column(Integer, nullable=False)
    sender_name = Column(String(255), nullable=False)
    bank_code = Column(String(4), nullable=False)
    branch_code = Column(String(3), nullable=False)
    account_type = Column(String(10), nullable=False)
    account_number = Column(String(8), nullable=False)
    account_holder_name = Column(String(255), nullable=False)
    withdrawal_confirmed_by = Column(String(254), nullable=False)


class LeftAwaitingWithdrawal(PayoutStateMixin, Base):
    """Payout abandoned with no harm to either party."""
    __tablename__ = "left_awaiting_withdrawals"

    sender_name = Column(String(255), nullable=False)
    confirmed_by = Column(String(254), nullable=False)


class NeglectedPayment(PayoutStateMixin, Base):
    """Payout whose window was missed."""
    __tablename__ = "neglected_payments"

    sender_name = Column(String(255), nullable=False)
    neglect_confirmed_by = Column(String(254), nullable=False)


class RefundedPayment(PayoutStateMixin, Base):
    """Fee returned to the requester."""
    __tablename__ = "refunded_payments"

    sender_name = Column(String(255), nullable=True)  # absent when refunded before capture
    transfer_fee_in_yen = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    refund_confirmed_by = Column(String(254), nullable=False)
