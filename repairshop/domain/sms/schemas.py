"""SMS domain schemas"""

from typing import Optional

from pydantic import BaseModel

from ...models import MessageType


class SmsSettings(BaseModel):
    """Webhook secrets and reply wording, injected into the webhook route"""

    auth_token: Optional[str] = None
    webhook_url: Optional[str] = None
    shop_name: str = "Sound Technology Inc"
    shop_phone: str = "813-985-1120"


class InboundSms(BaseModel):
    """Fields read from Twilio's form-encoded webhook payload"""

    message_sid: str = ""
    from_number: str = ""
    to_number: str = ""
    body: str = ""

    @classmethod
    def from_form(cls, params: dict) -> "InboundSms":
        return cls(
            message_sid=params.get("MessageSid") or params.get("SmsSid") or "",
            from_number=params.get("From") or "",
            to_number=params.get("To") or "",
            body=(params.get("Body") or "").strip(),
        )


class SmsOutcome(BaseModel):
    """Result of handling one inbound text"""

    message_type: str = MessageType.GENERAL
    reply: Optional[str] = None
    client_id: Optional[int] = None
    repair_id: Optional[int] = None
