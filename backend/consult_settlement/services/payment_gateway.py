"""
Client for the payment platform's charge API.

Only the three operations the settlement workflow needs are exposed:
creating an uncaptured hold, capturing it and refunding it.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel
import httpx
import logging
from consult_settlement.core.config import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """The payment platform rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Charge(BaseModel):
    """Subset of the platform's charge object."""
    id: str
    amount: int
    captured: bool = False
    refunded: bool = False
    expired_at: Optional[datetime] = None


class PaymentGatewayClient:
    """Synchronous httpx client with basic auth and a request timeout."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self._client = httpx.Client(
            base_url=base_url,
            auth=(username, password),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def create_hold(
        self,
        amount: int,
        card_token: str,
        tenant_id: str,
        expiry_days: int,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Charge:
        """Authorize amount on the card without capturing it (3-D Secure required)."""
        data = {
            "amount": amount,
            "currency": "jpy",
            "card": card_token,
            "capture": "false",
            "expiry_days": expiry_days,
            "three_d_secure": "true",
            "tenant": tenant_id,
        }
        for key, value in (metadata or {}).items():
            data[f"metadata[{key}]"] = value
        return self._post("/v1/charges", data)

    def capture(self, charge_id: str) -> Charge:
        return self._post(f"/v1/charges/{charge_id}/capture", {})

    def refund(self, charge_id: str, reason: Optional[str] = None) -> Charge:
        """Refund a captured charge or release an uncaptured hold."""
        data = {"refund_reason": reason} if reason else {}
        return self._post(f"/v1/charges/{charge_id}/refund", data)

    def _post(self, path: str, data: Dict[str, Any]) -> Charge:
        try:
            response = self._client.post(path, data=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"payment platform error on {path}: {e.response.status_code} - {e.response.text}")
            raise PaymentGatewayError(
                f"payment platform returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"failed to reach payment platform on {path}: {e}")
            raise PaymentGatewayError(f"payment platform request failed: {e}") from e

        body = response.json()
        expired_at = body.get("expired_at")
        return Charge(
            id=body["id"],
            amount=body.get("amount", 0),
            captured=body.get("captured", False),
            refunded=body.get("refunded", False),
            # the platform reports unix time
            expired_at=datetime.fromtimestamp(expired_at, tz=timezone.utc) if expired_at else None,
        )


def create_payment_gateway() -> PaymentGatewayClient:
    """Build a client from settings."""
    return PaymentGatewayClient(
        base_url=settings.PAYMENT_PLATFORM_API_URL,
        username=settings.PAYMENT_PLATFORM_API_USERNAME,
        password=settings.PAYMENT_PLATFORM_API_PASSWORD,
        timeout=settings.PAYMENT_PLATFORM_TIMEOUT_SECONDS,
    )
