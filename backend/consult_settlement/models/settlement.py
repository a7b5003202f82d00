"""
Settlement models: the card hold of an accepted consultation and its projections.
"""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey
from consult_settlement.db.base import BaseModel, UTCDateTime


class Settlement(BaseModel):
    """Uncaptured card hold waiting for the meeting and the ratings."""
    __tablename__ = "settlements"

    consultation_id = Column(Integer, ForeignKey("consultations.id"), nullable=False, unique=True)
    charge_id = Column(String(64), nullable=False, unique=True)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    platform_fee_rate_in_percentage = Column(Numeric(5, 2), nullable=False)
    credit_facilities_expired_at = Column(UTCDateTime, nullable=False, index=True)


class StoppedSettlement(BaseModel):
    """Settlement put on hold after an anomaly was detected."""
    __tablename__ = "stopped_settlements"

    consultation_id = Column(Integer, ForeignKey("consultations.id"), nullable=False, unique=True)
    charge_id = Column(String(64), nullable=False, unique=True)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    platform_fee_rate_in_percentage = Column(Numeric(5, 2), nullable=False)
    credit_facilities_expired_at = Column(UTCDateTime, nullable=False, index=True)
    stopped_at = Column(UTCDateTime, nullable=False)


class Receipt(BaseModel):
    """Record of a captured charge. At most one per consultation."""
    __tablename__ = "receipts"

    # not unique on purpose: duplicates are detected when read
    consultation_id = Column(Integer, nullable=False, index=True)
    charge_id = Column(String(64), nullable=False)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    platform_fee_rate_in_percentage = Column(Numeric(5, 2), nullable=False)
    settled_at = Column(UTCDateTime, nullable=False)


class Refund(BaseModel):
    """
    Record of a settlement given up on and returned to the requester. At most one per consultation.

    The platform is only asked to refund while the hold is valid; a row for an
    expired hold records a charge the platform already released.
    """
    __tablename__ = "refunds"

    consultation_id = Column(Integer, nullable=False, index=True)
    charge_id = Column(String(64), nullable=False)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    platform_fee_rate_in_percentage = Column(Numeric(5, 2), nullable=False)
    refunded_at = Column(UTCDateTime, nullable=False)
