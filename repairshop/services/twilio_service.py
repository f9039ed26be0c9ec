"""
Twilio SMS Service
Sends outbound texts through the Twilio REST API
"""

import logging
from typing import Optional

import httpx

from .. import config

logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Raised when Twilio refuses or fails to accept a message"""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class TwilioMessagingClient:
    """Outbound SMS client, constructed once at startup and injected into routes"""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        api_base_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.api_base_url}/Accounts/{self.account_sid}/Messages.json"

    async def send_sms(self, to_phone: str, body: str) -> str:
        """
        Send SMS via Twilio

        Args:
            to_phone: Recipient phone number in E.164 format
            body: Message content

        Returns:
            Twilio message SID

        Raises:
            MessagingError: If the API call fails or Twilio rejects the message
        """
        if not to_phone or not to_phone.startswith("+"):
            raise MessagingError("Phone number must be in E.164 format (e.g., +18135550100)")

        data = {"To": to_phone, "From": self.from_number, "Body": body}

        logger.info(f"🚀 Sending SMS to Twilio API for {to_phone}")
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    self.messages_url,
                    auth=(self.account_sid, self.auth_token),
                    data=data,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"Twilio API error: {str(e)}")
            raise MessagingError(str(e)) from e

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent successfully to {to_phone} (SID: {message_sid})")
            return message_sid

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")

        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        raise MessagingError(error_message, code=error_code)


def build_messaging_client() -> Optional[TwilioMessagingClient]:
    """Build the client from configuration; None when Twilio is not configured"""
    if not all([config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN, config.TWILIO_PHONE_NUMBER]):
        logger.warning("Twilio not configured - outbound SMS disabled")
        return None

    return TwilioMessagingClient(
        account_sid=config.TWILIO_ACCOUNT_SID,
        auth_token=config.TWILIO_AUTH_TOKEN,
        from_number=config.TWILIO_PHONE_NUMBER,
        api_base_url=config.TWILIO_API_BASE_URL,
    )
