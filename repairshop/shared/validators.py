"""Shared validation utilities"""

import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> str:
    """
    Normalize a phone number to the key used for every phone comparison.

    Strips all non-digit characters, then drops the leading country code "1"
    when exactly 11 digits remain. Other lengths pass through as digits only.
    Normalizing twice gives the same result as normalizing once.

    Args:
        phone: Phone number string in any format ("+1 (813) 555-0100", "813.555.0100")

    Returns:
        Digits-only phone number, or "" when there are no digits
    """
    digits = re.sub(r"\D", "", phone or "", flags=re.ASCII)

    # Handle +1 prefix
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]

    return digits


def to_e164(phone: Optional[str]) -> Optional[str]:
    """
    Format a stored phone number for sending.

    10-digit numbers are treated as US numbers (+1XXXXXXXXXX); anything else
    is prefixed with "+" as-is. Returns None when there are no digits.
    """
    digits = normalize_phone(phone)
    if not digits:
        return None

    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"
