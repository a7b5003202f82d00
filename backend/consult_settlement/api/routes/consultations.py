"""
Consultation request routes.
"""
from datetime import datetime
from fastapi import APIRouter, Depends
from consult_settlement.api.dependencies import (
    AuthenticatedAccount, get_consultation_request_service, get_current_time, get_current_user
)
from consult_settlement.schemas.consultation import (
    ChargeIdResponse, ConsultationIdResponse, ConsultationRequestAcceptance, ConsultationRequestCreate
)
from consult_settlement.services.consultation_request_service import ConsultationRequestService

router = APIRouter(prefix="/consultation", tags=["consultation"])


@router.post("/request-consultation", response_model=ChargeIdResponse)
def request_consultation(
    req: ConsultationRequestCreate,
    current_user: AuthenticatedAccount = Depends(get_current_user),
    current_time: datetime = Depends(get_current_time),
    service: ConsultationRequestService = Depends(get_consultation_request_service)
):
    """Request a consultation and hold its fee on the requester's card."""
    charge_id = service.request_consultation(
        current_user.account_id,
        req.consultant_id,
        req.fee_per_hour_in_yen,
        req.card_token,
        [req.first_candidate_in_jst, req.second_candidate_in_jst, req.third_candidate_in_jst],
        current_time,
    )
    return ChargeIdResponse(charge_id=charge_id)


@router.post("/consultation-request-acceptance", response_model=ConsultationIdResponse)
def accept_consultation_request(
    req: ConsultationRequestAcceptance,
    current_user: AuthenticatedAccount = Depends(get_current_user),
    current_time: datetime = Depends(get_current_time),
    service: ConsultationRequestService = Depends(get_consultation_request_service)
):
    """Consultant accepts a request by picking one of its candidates."""
    consultation_id = service.accept_consultation_request(
        current_user.account_id,
        req.consultation_req_id,
        req.picked_candidate,
        req.user_checked,
        current_time,
    )
    return ConsultationIdResponse(consultation_id=consultation_id)
