"""SMS router - Twilio inbound message webhook"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from twilio.twiml.messaging_response import MessagingResponse

from ... import config
from ...database import get_db
from ...webhook_security import WebhookSignatureError, parse_form_body, verify_twilio_request
from .schemas import InboundSms, SmsSettings
from .service import SmsWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sms", tags=["sms"])


def get_sms_settings() -> SmsSettings:
    """Dependency providing webhook secrets; overridden in tests"""
    return SmsSettings(
        auth_token=config.TWILIO_AUTH_TOKEN,
        webhook_url=config.TWILIO_WEBHOOK_URL,
        shop_name=config.SHOP_NAME,
        shop_phone=config.SHOP_PHONE,
    )


def build_twiml_reply(reply: str | None) -> str:
    """Render a TwiML <Response>, with one <Message> when there is a reply"""
    response = MessagingResponse()
    if reply:
        response.message(reply)
    return str(response)


@router.post("/incoming")
async def handle_incoming_sms(
    request: Request,
    db: Session = Depends(get_db),
    settings: SmsSettings = Depends(get_sms_settings),
):
    """
    Handle an inbound SMS from Twilio.

    Unauthenticated requests are rejected before any database access with a
    plain-text 403 (500 when the webhook URL is not configured). Everything
    else gets HTTP 200 with well-formed TwiML, even when processing fails.
    """
    raw_body = await request.body()

    if not settings.auth_token:
        logger.error("❌ TWILIO_AUTH_TOKEN not set, rejecting webhook")
        return PlainTextResponse("Forbidden", status_code=403)

    if not settings.webhook_url:
        logger.error("❌ TWILIO_WEBHOOK_URL not set, cannot validate signature")
        return PlainTextResponse("Server misconfigured", status_code=500)

    try:
        verify_twilio_request(settings.auth_token, settings.webhook_url, request.headers, raw_body)
    except WebhookSignatureError as e:
        logger.warning(f"🚫 Twilio webhook rejected: {e}")
        return PlainTextResponse("Forbidden", status_code=403)

    reply = None
    try:
        message = InboundSms.from_form(dict(parse_form_body(raw_body)))
        outcome = SmsWebhookService(db, settings).handle_inbound(message)
        reply = outcome.reply
    except Exception:
        logger.exception("❌ SMS webhook error")

    return Response(content=build_twiml_reply(reply), media_type="text/xml")
