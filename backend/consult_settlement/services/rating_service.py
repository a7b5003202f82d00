"""
Rating gate: each party of a finished consultation rates the other once.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import Session
import logging
from consult_settlement.core.config import SettlementPolicy
from consult_settlement.core.errors import ApiError, Code
from consult_settlement.db.locking import find_with_exclusive_lock
from consult_settlement.db.session import transaction
from consult_settlement.models.consultation import Consultation, ConsultantRating, UserRating

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingRole(str, Enum):
    """Who is being rated."""
    USER = "user"              # requester, rated by the consultant
    CONSULTANT = "consultant"  # consultant, rated by the requester


_RATING_MODELS = {
    RatingRole.USER: UserRating,
    RatingRole.CONSULTANT: ConsultantRating,
}

_ALREADY_RATED_CODES = {
    RatingRole.USER: Code.USER_ACCOUNT_HAS_ALREADY_BEEN_RATED,
    RatingRole.CONSULTANT: Code.CONSULTANT_HAS_ALREADY_BEEN_RATED,
}


def ensure_consultation_id_is_positive(consultation_id: int) -> None:
    if consultation_id <= 0:
        logger.error(f"consultation_id ({consultation_id}) is not positive")
        raise ApiError(Code.CONSULTATION_ID_IS_NOT_POSITIVE)


def ensure_rating_id_is_positive(rating_id: int) -> None:
    if rating_id <= 0:
        logger.error(f"rating_id ({rating_id}) is not positive")
        raise ApiError(Code.RATING_ID_IS_NOT_POSITIVE)


def ensure_rating_is_valid(rating: int) -> None:
    if rating < MIN_RATING or rating > MAX_RATING:
        logger.error(f"rating ({rating}) is not in [{MIN_RATING}, {MAX_RATING}]")
        raise ApiError(Code.INVALID_RATING)


def ensure_end_of_consultation_has_passed(
    meeting_at: datetime,
    current_time: datetime,
    policy: SettlementPolicy
) -> None:
    """Ratings open strictly after the meeting has ended."""
    end_of_consultation = meeting_at + policy.length_of_meeting
    if current_time <= end_of_consultation:
        logger.error(
            f"end of consultation ({end_of_consultation}) has not passed yet (current time: {current_time})"
        )
        raise ApiError(Code.END_OF_CONSULTATION_DATE_TIME_HAS_NOT_PASSED_YET)


class RatingService:
    """Accepts ratings from the parties of a consultation."""

    def __init__(self, db: Session, policy: SettlementPolicy):
        self.db = db
        self.policy = policy

    def submit_rating(
        self,
        caller_id: int,
        consultation_id: int,
        role: RatingRole,
        rating: int,
        current_time: datetime
    ) -> None:
        """
        Store the rating of `role` for the consultation.

        The consultant rates the user and the user rates the consultant, so the
        caller has to be the other party of the consultation.
        """
        ensure_consultation_id_is_positive(consultation_id)
        ensure_rating_is_valid(rating)

        consultation = self.db.query(Consultation).filter(Consultation.id == consultation_id).first()
        rater_id = None
        if consultation:
            rater_id = consultation.consultant_id if role == RatingRole.USER else consultation.user_account_id
        if rater_id != caller_id:
            logger.error(f"no consultation (consultation_id: {consultation_id}) rateable by {caller_id} found")
            raise ApiError(Code.NO_CONSULTATION_FOUND)

        ensure_end_of_consultation_has_passed(consultation.meeting_at, current_time, self.policy)

        model = _RATING_MODELS[role]
        with transaction(self.db):
            rating_row = find_with_exclusive_lock(self.db, model, model.consultation_id == consultation_id)
            if rating_row is None:
                rating_row = model(consultation_id=consultation_id)
                self.db.add(rating_row)
            elif rating_row.rating is not None:
                logger.error(
                    f"{role.value} of consultation ({consultation_id}) has already been rated "
                    f"(rating: {rating_row.rating}, rated_at: {rating_row.rated_at})"
                )
                raise ApiError(_ALREADY_RATED_CODES[role])
            rating_row.rating = rating
            rating_row.rated_at = current_time
        logger.info(f"{role.value} of consultation ({consultation_id}) rated {rating} by {caller_id}")


def find_rating_by_consultation_id(db: Session, role: RatingRole, consultation_id: int):
    ensure_consultation_id_is_positive(consultation_id)
    model = _RATING_MODELS[role]
    return db.query(model).filter(model.consultation_id == consultation_id).first()


def find_rating_by_rating_id(db: Session, role: RatingRole, rating_id: int):
    ensure_rating_id_is_positive(rating_id)
    model = _RATING_MODELS[role]
    return db.query(model).filter(model.id == rating_id).first()


def is_fully_rated(db: Session, consultation_id: int) -> bool:
    """True when both parties have rated the consultation."""
    for model in _RATING_MODELS.values():
        row = db.query(model).filter(model.consultation_id == consultation_id).first()
        if row is None or row.rating is None:
            return False
    return True
