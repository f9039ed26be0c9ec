"""Test helpers shared across modules"""

from urllib.parse import urlencode

from repairshop.webhook_security import TWILIO_SIGNATURE_HEADER, compute_twilio_signature

AUTH_TOKEN = "test_auth_token"
WEBHOOK_URL = "https://shop.example.com/sms/incoming"
SHOP_NUMBER = "+18135550000"


class FakeMessagingClient:
    """Stands in for TwilioMessagingClient and records what was sent"""

    def __init__(self, from_number=SHOP_NUMBER, sid="SM_fake_0001", error=None):
        self.from_number = from_number
        self.sid = sid
        self.error = error
        self.sent = []

    async def send_sms(self, to_phone, body):
        if self.error:
            raise self.error
        self.sent.append((to_phone, body))
        return self.sid


def sign_form(params, auth_token=AUTH_TOKEN, url=WEBHOOK_URL):
    """Encode a webhook form body and the headers Twilio would send with it"""
    body = urlencode(params)
    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        TWILIO_SIGNATURE_HEADER: compute_twilio_signature(auth_token, url, params),
    }
    return body, headers


def inbound_form(body, from_number="+18135551234", to_number=SHOP_NUMBER, sid="SM_in_0001"):
    return {"MessageSid": sid, "From": from_number, "To": to_number, "Body": body}
