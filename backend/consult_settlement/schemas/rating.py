"""
Pydantic schemas for ratings.
"""
from pydantic import BaseModel
from typing import Optional
from consult_settlement.schemas.common import JstDateTime


class RatingSubmit(BaseModel):
    """Schema for rating the other party of a consultation."""
    consultation_id: int
    rating: int


class RatingResponse(BaseModel):
    rating_id: int
    consultation_id: int
    rating: Optional[int] = None
    rated_at: Optional[JstDateTime] = None


class UserRatingResult(BaseModel):
    user_rating: Optional[RatingResponse] = None


class ConsultantRatingResult(BaseModel):
    consultant_rating: Optional[RatingResponse] = None
