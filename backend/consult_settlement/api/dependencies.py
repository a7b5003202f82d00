"""
FastAPI dependencies shared by the routes.
"""
from datetime import datetime
from typing import Optional
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session
from consult_settlement.core.config import JAPANESE_TIME_ZONE, SettlementPolicy, settings
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.core.security import ROLE_ADMIN, ROLE_USER, decode_access_token
from consult_settlement.db.session import get_db
from consult_settlement.services.consultation_request_service import ConsultationRequestService
from consult_settlement.services.payment_gateway import create_payment_gateway
from consult_settlement.services.payout_service import PayoutService
from consult_settlement.services.rating_service import RatingService
from consult_settlement.services.settlement_service import SettlementService

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedAccount(BaseModel):
    """Caller identified by the bearer token."""
    account_id: int
    email: str
    role: str


def get_current_time() -> datetime:
    """Clock used by every workflow operation."""
    return datetime.now(JAPANESE_TIME_ZONE)


def get_settlement_policy() -> SettlementPolicy:
    return settings.settlement_policy()


def get_payment_gateway():
    """Dependency for getting a payment platform client."""
    client = create_payment_gateway()
    try:
        yield client
    finally:
        client.close()


def _authenticate(credentials: Optional[HTTPAuthorizationCredentials]) -> AuthenticatedAccount:
    if credentials is None:
        raise ApiError(Code.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise ApiError(Code.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)
    try:
        return AuthenticatedAccount(
            account_id=int(payload["sub"]),
            email=payload["email"],
            role=payload["role"],
        )
    except (KeyError, ValueError, TypeError):
        raise ApiError(Code.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> AuthenticatedAccount:
    """Authenticated end user (requester or consultant)."""
    account = _authenticate(credentials)
    if account.role != ROLE_USER:
        raise ApiError(Code.ACCESS_DENIED, status.HTTP_403_FORBIDDEN)
    return account


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> AuthenticatedAccount:
    """Authenticated administrator."""
    account = _authenticate(credentials)
    if account.role != ROLE_ADMIN:
        raise ApiError(Code.ACCESS_DENIED, status.HTTP_403_FORBIDDEN)
    return account


def get_settlement_service(
    db: Session = Depends(get_db),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    payment_gateway=Depends(get_payment_gateway)
) -> SettlementService:
    return SettlementService(db, policy, payment_gateway)


def get_payout_service(
    db: Session = Depends(get_db),
    policy: SettlementPolicy = Depends(get_settlement_policy)
) -> PayoutService:
    return PayoutService(db, policy)


def get_rating_service(
    db: Session = Depends(get_db),
    policy: SettlementPolicy = Depends(get_settlement_policy)
) -> RatingService:
    return RatingService(db, policy)


def get_consultation_request_service(
    db: Session = Depends(get_db),
    policy: SettlementPolicy = Depends(get_settlement_policy),
    payment_gateway=Depends(get_payment_gateway)
) -> ConsultationRequestService:
    return ConsultationRequestService(db, policy, payment_gateway)
