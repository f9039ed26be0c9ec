"""
Webhook Security Module

Signature verification for the Twilio SMS webhook.

Twilio signs each request with HMAC-SHA1 over the public webhook URL followed
by every POST parameter (name + value) in sorted order, keyed with the
account auth token, and sends the base64 digest in X-Twilio-Signature.

Verification is a pure function of (token, url, headers, body): no logging of
secrets, no database access, no request object.
"""

import base64
import hashlib
import hmac
import logging
from typing import Iterable, Mapping, Optional, Union
from urllib.parse import parse_qsl

logger = logging.getLogger(__name__)

TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"

FormParams = Union[Mapping[str, str], Iterable[tuple[str, str]]]


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha1_base64(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA1 signature of payload and return base64 encoded"""
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha1).digest()
    return base64.b64encode(signature).decode("utf-8")


def parse_form_body(body: bytes) -> list[tuple[str, str]]:
    """Decode an application/x-www-form-urlencoded body, keeping blank values"""
    return parse_qsl(body.decode("utf-8"), keep_blank_values=True)


def compute_twilio_signature(auth_token: str, url: str, params: FormParams) -> str:
    """
    Compute the signature Twilio sends for a form POST.

    Args:
        auth_token: Twilio auth token (shared signing secret)
        url: The exact public URL configured in the Twilio console
        params: Form fields as a mapping or a list of (name, value) pairs

    Returns:
        Base64 encoded HMAC-SHA1 digest
    """
    pairs = params.items() if isinstance(params, Mapping) else params

    # Repeated names are ordered by value as well
    signed = url + "".join(name + value for name, value in sorted(pairs))
    return compute_hmac_sha1_base64(auth_token, signed.encode("utf-8"))


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works on plain dicts too"""
    value = headers.get(name)
    if value is not None:
        return value

    lowered = name.lower()
    for key, header_value in headers.items():
        if key.lower() == lowered:
            return header_value
    return None


def is_valid_twilio_request(
    auth_token: Optional[str],
    webhook_url: Optional[str],
    headers: Mapping[str, str],
    body: bytes,
) -> bool:
    """
    Verify that a webhook request was signed by Twilio.

    Fails closed: a missing token, URL or signature header is a rejection.

    Args:
        auth_token: Twilio auth token
        webhook_url: Configured public webhook URL (not the URL the app sees)
        headers: Request headers
        body: Raw form-encoded request body

    Returns:
        True only if the computed signature matches the header
    """
    if not auth_token or not webhook_url:
        return False

    signature = _get_header(headers, TWILIO_SIGNATURE_HEADER)
    if not signature:
        return False

    try:
        params = parse_form_body(body)
    except UnicodeDecodeError:
        return False

    expected = compute_twilio_signature(auth_token, webhook_url, params)
    return constant_time_compare(expected, signature)


def verify_twilio_request(
    auth_token: Optional[str],
    webhook_url: Optional[str],
    headers: Mapping[str, str],
    body: bytes,
) -> None:
    """
    Same check as is_valid_twilio_request, raising with the failure reason.

    Raises:
        WebhookSignatureError: If the request cannot be authenticated
    """
    if not auth_token:
        raise WebhookSignatureError("TWILIO_AUTH_TOKEN not configured")
    if not webhook_url:
        raise WebhookSignatureError("TWILIO_WEBHOOK_URL not configured")
    if not _get_header(headers, TWILIO_SIGNATURE_HEADER):
        raise WebhookSignatureError(f"Missing {TWILIO_SIGNATURE_HEADER} header")
    if not is_valid_twilio_request(auth_token, webhook_url, headers, body):
        raise WebhookSignatureError("Invalid Twilio signature")
