"""Twilio REST client for phone verification codes and WhatsApp messages."""

import httpx
from typing import Dict, Any

from gollisconnect.core.config import settings
from gollisconnect.core.exceptions import UpstreamServiceError
from gollisconnect.core.logging_config import logger


class SMSService:
    """
    Talks to two Twilio products:
    - Verify v2 for one-time phone verification codes
    - Programmable Messaging for WhatsApp payment confirmations

    Failures raise UpstreamServiceError so the verification endpoints can
    surface them; the notification facade catches them for fire-and-forget
    messages.
    """

    PROVIDER = "Twilio"

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.verify_service_sid = settings.TWILIO_VERIFY_SERVICE_SID
        self.whatsapp_from = settings.TWILIO_WHATSAPP_FROM
        self.api_base_url = settings.TWILIO_API_BASE_URL
        self.verify_base_url = settings.TWILIO_VERIFY_BASE_URL
        self.timeout = settings.TWILIO_REQUEST_TIMEOUT

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    async def _post(self, url: str, data: Dict[str, str]) -> Dict[str, Any]:
        if not self.is_configured:
            raise UpstreamServiceError(self.PROVIDER, "SMS service not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    data=data,
                    auth=(self.account_sid, self.auth_token),
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[SMS] HTTP error from Twilio: {e.response.status_code} - {e.response.text}")
            raise UpstreamServiceError(self.PROVIDER, f"request failed with status {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"[SMS] Request error talking to Twilio: {e}")
            raise UpstreamServiceError(self.PROVIDER, "service unreachable")

    async def send_verification_code(self, phone_number: str) -> Dict[str, Any]:
        """Start a Verify SMS verification; returns Twilio's verification resource."""
        if not self.verify_service_sid:
            raise UpstreamServiceError(self.PROVIDER, "verify service not configured")

        url = f"{self.verify_base_url}/Services/{self.verify_service_sid}/Verifications"
        result = await self._post(url, {"To": phone_number, "Channel": "sms"})
        logger.info(f"[SMS] Verification code sent to {phone_number}: {result.get('status')}")
        return result

    async def check_verification_code(self, phone_number: str, code: str) -> Dict[str, Any]:
        """Check a code; status is "approved" when it matches."""
        if not self.verify_service_sid:
            raise UpstreamServiceError(self.PROVIDER, "verify service not configured")

        url = f"{self.verify_base_url}/Services/{self.verify_service_sid}/VerificationCheck"
        return await self._post(url, {"To": phone_number, "Code": code})

    async def send_whatsapp_message(self, phone_number: str, body: str) -> Dict[str, Any]:
        url = f"{self.api_base_url}/Accounts/{self.account_sid}/Messages.json"
        result = await self._post(url, {
            "From": f"whatsapp:{self.whatsapp_from}",
            "To": f"whatsapp:{phone_number}",
            "Body": body,
        })
        logger.info(f"[SMS] WhatsApp message queued for {phone_number}: {result.get('sid')}")
        return result


# Singleton instance
sms_service = SMSService()
