"""
Webhook Delivery Agent
======================
Delivers OTPs by calling an HTTP webhook.
"""

import hashlib
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

import httpx
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings
from ..errors import DeliveryFailedError
from ..interfaces import DeliveryAgent
from ..models import OTPValue

logger = logging.getLogger(__name__)

BodyBuilder = Callable[[OTPValue], Union[Dict[str, Any], str]]

RECEIPT_ID_FIELDS = ("receiptId", "receipt_id", "id", "messageId", "message_id")


def _iso(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


class WebhookTarget(BaseModel):
    type: str
    value: str
    uniqueIdentifier: Optional[str] = None


class WebhookOTP(BaseModel):
    value: str
    reference: str
    expiresAt: str
    resendAllowedAt: str


class WebhookData(BaseModel):
    target: WebhookTarget
    otp: WebhookOTP


class WebhookPayload(BaseModel):
    """Default webhook body."""
    event: str = "otp_requested"
    timestamp: str
    data: WebhookData

    @classmethod
    def from_otp(cls, otp: OTPValue) -> "WebhookPayload":
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            data=WebhookData(
                target=WebhookTarget(
                    type=otp.target.type.value,
                    value=otp.target.value,
                    uniqueIdentifier=otp.target.unique_identifier,
                ),
                otp=WebhookOTP(
                    value=otp.value,
                    reference=otp.reference,
                    expiresAt=_iso(otp.expires_at_ms),
                    resendAllowedAt=_iso(otp.resend_allowed_at_ms),
                ),
            ),
        )


def default_body_builder(otp: OTPValue) -> Dict[str, Any]:
    return WebhookPayload.from_otp(otp).model_dump(mode="json")


class WebhookDeliveryAgent(DeliveryAgent):
    """
    HTTP webhook delivery agent.

    Features:
    - Custom body builder (dict sent as JSON, str sent verbatim)
    - Retries on transport errors (connect failures, timeouts)
    - Receipt id taken from the webhook response when present
    """

    def __init__(
        self,
        webhook_url: str,
        body_builder: Optional[BodyBuilder] = None,
        headers: Optional[Dict[str, str]] = None,
        method: str = "POST",
        timeout: float = 30.0,
        max_attempts: int = 1,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            webhook_url: Destination URL
            body_builder: Builds the request body from the OTP
            headers: Extra request headers
            method: POST, PUT or PATCH
            timeout: Request timeout in seconds
            max_attempts: Attempts on transport errors (1 = no retry)
            client: Shared HTTP client owned by the caller
            transport: Transport for the per-delivery client used when ``client`` is not given
        """
        self.webhook_url = webhook_url
        self.body_builder = body_builder or default_body_builder
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.method = method.upper()
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self._client = client
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        webhook_url: str,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> "WebhookDeliveryAgent":
        """Build an agent using the timeout from environment settings."""
        settings = settings or Settings()
        kwargs.setdefault("timeout", settings.webhook_timeout)
        return cls(webhook_url, **kwargs)

    async def send_message_to_audience(self, otp: OTPValue) -> str:
        body = self.body_builder(otp)
        content = body if isinstance(body, str) else json.dumps(body)

        try:
            if self._client is not None:
                response = await self._send(self._client, content)
            else:
                # No shared client: one client per delivery, closed on exit
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await self._send(client, content)
        except httpx.HTTPError as e:
            logger.error(f"Webhook delivery to {self.webhook_url} failed: {e}")
            raise DeliveryFailedError(f"Webhook delivery failed: {e}") from e

        if not response.is_success:
            raise DeliveryFailedError(
                f"Webhook delivery failed: HTTP {response.status_code}: {response.reason_phrase}",
                status=response.status_code,
            )

        return self._extract_receipt_id(response) or self._generate_receipt_id(otp)

    async def _send(self, client: httpx.AsyncClient, content: str) -> httpx.Response:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await client.request(
                    self.method,
                    self.webhook_url,
                    content=content,
                    headers=self.headers,
                    timeout=self.timeout,
                )

    def _extract_receipt_id(self, response: httpx.Response) -> Optional[str]:
        content_type = response.headers.get("content-type", "")

        if "application/json" in content_type:
            try:
                data = response.json()
            except ValueError:
                return None
            if not isinstance(data, dict):
                return None
            for name in RECEIPT_ID_FIELDS:
                if data.get(name):
                    return str(data[name])
            return None

        if not content_type or content_type.startswith("text/"):
            return response.text.strip() or None

        return None

    def _generate_receipt_id(self, otp: OTPValue) -> str:
        """Fallback receipt id when the webhook returns none."""
        target_hash = hashlib.sha256(otp.target.value.encode()).hexdigest()[:8]
        return f"webhook_{int(time.time() * 1000)}_{target_hash}_{otp.reference}"
