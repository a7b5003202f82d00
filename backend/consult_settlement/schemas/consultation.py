"""
Pydantic schemas for consultation requests and consultations.
"""
from pydantic import BaseModel
from typing import Optional
from consult_settlement.schemas.common import JstDateTime


class ConsultationDateTime(BaseModel):
    """Candidate start time of a consultation in JST."""
    year: int
    month: int
    day: int
    hour: int


class ConsultationRequestCreate(BaseModel):
    """Schema for requesting a consultation."""
    consultant_id: int
    fee_per_hour_in_yen: int
    card_token: str
    first_candidate_in_jst: ConsultationDateTime
    second_candidate_in_jst: ConsultationDateTime
    third_candidate_in_jst: ConsultationDateTime


class ChargeIdResponse(BaseModel):
    charge_id: str


class ConsultationRequestAcceptance(BaseModel):
    """Schema for accepting a consultation request."""
    consultation_req_id: int
    picked_candidate: int
    user_checked: bool


class ConsultationIdResponse(BaseModel):
    consultation_id: int


class ConsultationResponse(BaseModel):
    consultation_id: int
    user_account_id: int
    consultant_id: int
    meeting_at: JstDateTime
    room_name: str
    user_account_entered_at: Optional[JstDateTime] = None
    consultant_entered_at: Optional[JstDateTime] = None


class ConsultationResult(BaseModel):
    consultation: Optional[ConsultationResponse] = None
