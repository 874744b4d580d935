# booking_api/utils/phone.py
"""Phone number helpers"""
import re

from booking_api.config.settings import get_settings

_NON_DIAL_CHARS = re.compile(r"[^\d+]")
_NON_DIGITS = re.compile(r"\D")


def normalize_phone_to_e164(value: str, country_code: str = None) -> str:
    """
    Normalize a loosely formatted phone number to E.164.

    Numbers already carrying a "+" keep their own country code. Bare digits
    that start with the default country code are only prefixed with "+";
    anything else is assumed to be a national number.
    Returns "" when no digits are present.
    """
    country_code = country_code or get_settings().DEFAULT_PHONE_COUNTRY_CODE
    compact = _NON_DIAL_CHARS.sub("", re.sub(r"\s+", "", value.strip()))
    if not compact:
        return ""

    if compact.startswith("+"):
        digits = _NON_DIGITS.sub("", compact[1:])
        return f"+{digits}" if digits else ""

    digits = _NON_DIGITS.sub("", compact)
    if not digits:
        return ""
    if digits.startswith(country_code):
        return f"+{digits}"
    return f"+{country_code}{digits}"


def phones_match(expected: str, provided: str) -> bool:
    """Self-service identity check: exact match after trimming"""
    return (expected or "") == (provided or "").strip()
