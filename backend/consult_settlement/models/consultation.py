"""
Consultation request, consultation and rating models.
"""
from sqlalchemy import Column, String, Integer, SmallInteger, ForeignKey
from consult_settlement.db.base import Base, BaseModel, UTCDateTime


class ConsultationRequest(BaseModel):
    """Pending request from a user to a consultant, backed by a card hold."""
    __tablename__ = "consultation_reqs"

    user_account_id = Column(Integer, nullable=False, index=True)  # requester
    consultant_id = Column(Integer, nullable=False, index=True)
    fee_per_hour_in_yen = Column(Integer, nullable=False)
    first_candidate_date_time = Column(UTCDateTime, nullable=False)
    second_candidate_date_time = Column(UTCDateTime, nullable=False)
    third_candidate_date_time = Column(UTCDateTime, nullable=False)
    latest_candidate_date_time = Column(UTCDateTime, nullable=False, index=True)
    charge_id = Column(String(64), nullable=False, unique=True)
    credit_facilities_expired_at = Column(UTCDateTime, nullable=False)

    def candidate(self, picked_candidate: int):
        return (
            self.first_candidate_date_time,
            self.second_candidate_date_time,
            self.third_candidate_date_time,
        )[picked_candidate - 1]


class Consultation(BaseModel):
    """Scheduled meeting between a requester and a consultant."""
    __tablename__ = "consultations"

    user_account_id = Column(Integer, nullable=False, index=True)
    consultant_id = Column(Integer, nullable=False, index=True)
    meeting_at = Column(UTCDateTime, nullable=False, index=True)
    room_name = Column(String(64), nullable=False, unique=True)
    user_account_entered_at = Column(UTCDateTime, nullable=True)
    consultant_entered_at = Column(UTCDateTime, nullable=True)


class UserRating(Base):
    """Rating of the requester, submitted by the consultant."""
    __tablename__ = "user_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    consultation_id = Column(Integer, ForeignKey("consultations.id"), nullable=False, unique=True)
    rating = Column(SmallInteger, nullable=True)
    rated_at = Column(UTCDateTime, nullable=True)


class ConsultantRating(Base):
    """Rating of the consultant, submitted by the requester."""
    __tablename__ = "consultant_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    consultation_id = Column(Integer, ForeignKey("consultations.id"), nullable=False, unique=True)
    rating = Column(SmallInteger, nullable=True)
    rated_at = Column(UTCDateTime, nullable=True)
