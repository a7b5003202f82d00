"""
Payout state machine, driven by admins once a charge has been captured.

AwaitingPayment -> AwaitingWithdrawal                 (confirm_payment)
AwaitingWithdrawal -> ReceiptOfConsultation           (receipt_of_consultation)
AwaitingWithdrawal -> LeftAwaitingWithdrawal          (leave_awaiting_withdrawal)
AwaitingWithdrawal -> NeglectedPayment                (neglect_payment)
AwaitingWithdrawal -> RefundedPayment                 (refund_from_awaiting_withdrawal)
"""
from datetime import datetime
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.core.errors import ApiError, Code, UnexpectedError
from consult_settlement.core.utils import generate_sender_name
from consult_settlement.db.locking import delete_moved_row, find_at_most_one, find_with_exclusive_lock
from consult_settlement.db.session import transaction
from consult_settlement.models.account import BankAccount, Identity
from consult_settlement.models.payout import (
    AwaitingPayment, AwaitingWithdrawal, LeftAwaitingWithdrawal,
    NeglectedPayment, ReceiptOfConsultation, RefundedPayment
)
from consult_settlement.models.settlement import Receipt
from consult_settlement.services.rating_service import ensure_consultation_id_is_positive
from consult_settlement.services.reward_service import calculate_reward

logger = logging.getLogger(__name__)

REFUND_REASON_FOR_USER_CLAIM = "refund due to user claim"


def _payout_columns(source) -> dict:
    return {
        "consultation_id": source.consultation_id,
        "consultant_id": source.consultant_id,
        "user_account_id": source.user_account_id,
        "meeting_at": source.meeting_at,
        "fee_per_hour_in_yen": source.fee_per_hour_in_yen,
    }


class PayoutService:
    """Admin-confirmed moves of captured consultation fees."""

    def __init__(self, db: Session, policy: SettlementPolicy):
        self.db = db
        self.policy = policy

    def confirm_payment(self, consultation_id: int, admin_email: str, current_time: datetime) -> None:
        """Admin confirmed how the fee reaches the platform account."""
        ensure_consultation_id_is_positive(consultation_id)
        with transaction(self.db):
            awaiting_payment = find_with_exclusive_lock(
                self.db, AwaitingPayment, AwaitingPayment.consultation_id == consultation_id
            )
            if awaiting_payment is None:
                logger.error(f"no awaiting_payment (consultation_id: {consultation_id}) found")
                raise ApiError(Code.NO_AWAITING_PAYMENT_FOUND)
            sender_name = self._sender_name(awaiting_payment.user_account_id, awaiting_payment.meeting_at)
            self.db.add(AwaitingWithdrawal(
                **_payout_columns(awaiting_payment),
                sender_name=sender_name,
                payment_confirmed_by=admin_email,
                created_at=current_time,
            ))
            delete_moved_row(self.db, AwaitingPayment, AwaitingPayment.consultation_id == consultation_id)
        logger.info(f"payment of consultation ({consultation_id}) confirmed by {admin_email}")

    def receipt_of_consultation(self, consultation_id: int, admin_email: str, current_time: datetime) -> None:
        """Payout to the consultant completed."""
        ensure_consultation_id_is_positive(consultation_id)
        with transaction(self.db):
            awaiting_withdrawal = self._lock_awaiting_withdrawal(consultation_id)
            receipt = find_at_most_one(self.db, Receipt, consultation_id)
            if receipt is None:
                raise UnexpectedError(f"no receipt found for consultation ({consultation_id})")
            bank_account = self.db.query(BankAccount).filter(
                BankAccount.user_account_id == awaiting_withdrawal.consultant_id
            ).first()
            if bank_account is None:
                raise UnexpectedError(
                    f"no bank account of consultant ({awaiting_withdrawal.consultant_id}) found"
                )
            try:
                reward = calculate_reward(
                    awaiting_withdrawal.fee_per_hour_in_yen,
                    receipt.platform_fee_rate_in_percentage,
                    self.policy.transfer_fee_in_yen,
                )
            except ValueError as e:
                raise UnexpectedError(f"failed to calculate reward of consultation ({consultation_id}): {e}") from e
            self.db.add(ReceiptOfConsultation(
                **_payout_columns(awaiting_withdrawal),
                platform_fee_rate_in_percentage=receipt.platform_fee_rate_in_percentage,
                transfer_fee_in_yen=self.policy.transfer_fee_in_yen,
                reward=reward,
                sender_name=awaiting_withdrawal.sender_name,
                bank_code=bank_account.bank_code,
                branch_code=bank_account.branch_code,
                account_type=bank_account.account_type,
                account_number=bank_account.account_number,
                account_holder_name=bank_account.account_holder_name,
                withdrawal_confirmed_by=admin_email,
                created_at=current_time,
            ))
            delete_moved_row(self.db, AwaitingWithdrawal, AwaitingWithdrawal.consultation_id == consultation_id)
        logger.info(f"reward ({reward} yen) of consultation ({consultation_id}) paid out, confirmed by {admin_email}")

    def leave_awaiting_withdrawal(self, consultation_id: int, admin_email: str, current_time: datetime) -> None:
        ensure_consultation_id_is_positive(consultation_id)
        with transaction(self.db):
            awaiting_withdrawal = self._lock_awaiting_withdrawal(consultation_id)
            self.db.add(LeftAwaitingWithdrawal(
                **_payout_columns(awaiting_withdrawal),
                sender_name=awaiting_withdrawal.sender_name,
                confirmed_by=admin_email,
                created_at=current_time,
            ))
            delete_moved_row(self.db, AwaitingWithdrawal, AwaitingWithdrawal.consultation_id == consultation_id)
        logger.info(f"awaiting_withdrawal of consultation ({consultation_id}) left by {admin_email}")

    def neglect_payment(self, consultation_id: int, admin_email: str, current_time: datetime) -> None:
        ensure_consultation_id_is_positive(consultation_id)
        with transaction(self.db):
            awaiting_withdrawal = self._lock_awaiting_withdrawal(consultation_id)
            self.db.add(NeglectedPayment(
                **_payout_columns(awaiting_withdrawal),
                sender_name=awaiting_withdrawal.sender_name,
                neglect_confirmed_by=admin_email,
                created_at=current_time,
            ))
            delete_moved_row(self.db, AwaitingWithdrawal, AwaitingWithdrawal.consultation_id == consultation_id)
        logger.info(f"payment of consultation ({consultation_id}) marked as neglected by {admin_email}")

    def refund_from_awaiting_withdrawal(
        self,
        consultation_id: int,
        admin_email: str,
        current_time: datetime
    ) -> None:
        """Return the fee to the requester by bank transfer."""
        ensure_consultation_id_is_positive(consultation_id)
        with transaction(self.db):
            awaiting_withdrawal = self._lock_awaiting_withdrawal(consultation_id)
            self.db.add(RefundedPayment(
                **_payout_columns(awaiting_withdrawal),
                sender_name=awaiting_withdrawal.sender_name,
                transfer_fee_in_yen=self.policy.transfer_fee_in_yen,
                reason=REFUND_REASON_FOR_USER_CLAIM,
                refund_confirmed_by=admin_email,
                created_at=current_time,
            ))
            delete_moved_row(self.db, AwaitingWithdrawal, AwaitingWithdrawal.consultation_id == consultation_id)
        logger.info(f"fee of consultation ({consultation_id}) refunded by {admin_email}")

    def _lock_awaiting_withdrawal(self, consultation_id: int) -> AwaitingWithdrawal:
        awaiting_withdrawal = find_with_exclusive_lock(
            self.db, AwaitingWithdrawal, AwaitingWithdrawal.consultation_id == consultation_id
        )
        if awaiting_withdrawal is None:
            logger.error(f"no awaiting_withdrawal (consultation_id: {consultation_id}) found")
            raise ApiError(Code.NO_AWAITING_WITHDRAWAL_FOUND)
        return awaiting_withdrawal

    def _sender_name(self, user_account_id: int, meeting_at: datetime) -> str:
        # the transfer cannot be matched without the requester's furigana
        identity = self.db.query(Identity).filter(Identity.user_account_id == user_account_id).first()
        if identity is None:
            logger.error(f"no identity of user account ({user_account_id}) found")
            raise ApiError(Code.NO_IDENTITY_FOUND)
        return generate_sender_name(identity.last_name_furigana, identity.first_name_furigana, meeting_at)
