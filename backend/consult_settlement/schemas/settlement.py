"""
Pydantic schemas for settlements and their receipt/refund projections.
"""
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from consult_settlement.schemas.common import JstDateTime


class SettlementIdRequest(BaseModel):
    settlement_id: int


class StoppedSettlementIdRequest(BaseModel):
    stopped_settlement_id: int


class RefundSettlementRequest(BaseModel):
    """Schema for giving up on a settlement."""
    settlement_id: int
    reason: str = "refund due to failed settlement"


class SettlementResponse(BaseModel):
    settlement_id: int
    consultation_id: int
    charge_id: str
    fee_per_hour_in_yen: int
    platform_fee_rate_in_percentage: Decimal
    credit_facilities_expired_at: JstDateTime


class StoppedSettlementResponse(BaseModel):
    stopped_settlement_id: int
    consultation_id: int
    charge_id: str
    fee_per_hour_in_yen: int
    platform_fee_rate_in_percentage: Decimal
    credit_facilities_expired_at: JstDateTime
    stopped_at: JstDateTime


class ReceiptResponse(BaseModel):
    receipt_id: int
    consultation_id: int
    charge_id: str
    fee_per_hour_in_yen: int
    platform_fee_rate_in_percentage: Decimal
    settled_at: JstDateTime


class RefundResponse(BaseModel):
    refund_id: int
    consultation_id: int
    charge_id: str
    fee_per_hour_in_yen: int
    platform_fee_rate_in_percentage: Decimal
    refunded_at: JstDateTime


class SettlementResult(BaseModel):
    settlement: Optional[SettlementResponse] = None


class StoppedSettlementResult(BaseModel):
    stopped_settlement: Optional[StoppedSettlementResponse] = None


class ReceiptResult(BaseModel):
    receipt: Optional[ReceiptResponse] = None


class RefundResult(BaseModel):
    refund: Optional[RefundResponse] = None
