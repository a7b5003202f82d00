"""
Shared pydantic types.
"""
from datetime import datetime
from typing import Annotated
from pydantic import PlainSerializer
from consult_settlement.core.utils import to_rfc3339_in_jst

# Datetime rendered as RFC 3339 in Japan Standard Time
JstDateTime = Annotated[datetime, PlainSerializer(to_rfc3339_in_jst, return_type=str)]
