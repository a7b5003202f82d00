"""
Rating routes for the parties of a consultation.
"""
from datetime import datetime
from fastapi import APIRouter, Depends
from consult_settlement.api.dependencies import (
    AuthenticatedAccount, get_current_time, get_current_user, get_rating_service
)
from consult_settlement.schemas.rating import RatingSubmit
from consult_settlement.services.rating_service import RatingRole, RatingService

router = APIRouter(prefix="/rating", tags=["rating"])


@router.post("/user-rating")
def rate_user(
    req: RatingSubmit,
    current_user: AuthenticatedAccount = Depends(get_current_user),
    current_time: datetime = Depends(get_current_time),
    service: RatingService = Depends(get_rating_service)
):
    """Consultant rates the requester."""
    service.submit_rating(current_user.account_id, req.consultation_id, RatingRole.USER, req.rating, current_time)
    return {}


@router.post("/consultant-rating")
def rate_consultant(
    req: RatingSubmit,
    current_user: AuthenticatedAccount = Depends(get_current_user),
    current_time: datetime = Depends(get_current_time),
    service: RatingService = Depends(get_rating_service)
):
    """Requester rates the consultant."""
    service.submit_rating(
        current_user.account_id, req.consultation_id, RatingRole.CONSULTANT, req.rating, current_time
    )
    return {}
