"""
Utility functions for the application.
"""
from datetime import datetime
from consult_settlement.core.config import JAPANESE_TIME_ZONE

# "0123456789" -> full width digits used in bank transfer sender names
_FULL_WIDTH_DIGITS = str.maketrans("0123456789", "０１２３４５６７８９")
_FULL_WIDTH_SPACE = "　"


def to_rfc3339_in_jst(value: datetime) -> str:
    """Render an aware datetime as RFC 3339 in Japan Standard Time."""
    return value.astimezone(JAPANESE_TIME_ZONE).isoformat()


def paginate(query, page: int, per_page: int):
    """Apply offset/limit paging to a query. page starts at 0."""
    return query.offset(page * per_page).limit(per_page)


def generate_sender_name(last_name_furigana: str, first_name_furigana: str, meeting_at: datetime) -> str:
    """
    Build the name a requester uses when wiring the fee.

    The furigana name is followed by the meeting's month, day and hour in JST
    so that admins can match an incoming transfer to its consultation.
    """
    meeting_at_in_jst = meeting_at.astimezone(JAPANESE_TIME_ZONE)
    suffix = (
        f"{meeting_at_in_jst.month:02}{meeting_at_in_jst.day:02}{meeting_at_in_jst.hour:02}"
    ).translate(_FULL_WIDTH_DIGITS)
    return f"{last_name_furigana}{_FULL_WIDTH_SPACE}{first_name_furigana}{_FULL_WIDTH_SPACE}{suffix}"
