"""Utility helpers for phone number and DTMF validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat, PhoneNumberType

from voxline.config import DEFAULT_COUNTRY

E164_RE = re.compile(r"\+[1-9][0-9]{1,14}")
NON_DIALABLE_RE = re.compile(r"[^0-9+]")
DTMF_TONES = frozenset("0123456789*#")

_LINE_TYPES = {
    PhoneNumberType.MOBILE: "mobile",
    PhoneNumberType.FIXED_LINE_OR_MOBILE: "mobile",
    PhoneNumberType.FIXED_LINE: "landline",
    PhoneNumberType.VOIP: "voip",
    PhoneNumberType.TOLL_FREE: "voip",
}


@dataclass(frozen=True)
class PhoneNumberInfo:
    is_valid: bool
    country: Optional[str] = None
    type: Optional[str] = None
    formatted: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "country": self.country,
            "type": self.type,
            "formatted": self.formatted,
        }


def validate_e164(phone_number: str) -> bool:
    """Return True if *phone_number* is ``+`` followed by 2-15 digits, the first non-zero."""
    return E164_RE.fullmatch(phone_number) is not None


def format_phone_number(phone_number: str) -> str:
    """Strip everything except digits and ``+`` and make sure the result starts with ``+``.

    This is a best-effort normalizer: the output is not guaranteed to pass
    :func:`validate_e164` (``"abc"`` becomes ``"+"``).
    """
    cleaned = NON_DIALABLE_RE.sub("", phone_number)
    if not cleaned.startswith("+"):
        cleaned = "+" + cleaned
    return cleaned


def is_dtmf_tone(tone: str) -> bool:
    return len(tone) == 1 and tone in DTMF_TONES


def is_dtmf_sequence(digits: str) -> bool:
    """True for a non-empty run of keypad tones such as ``"1234#"``."""
    return bool(digits) and all(is_dtmf_tone(d) for d in digits)


def normalize_msisdn(msisdn: str, default_country: str = DEFAULT_COUNTRY) -> str:
    """Normalize a phone number to E.164 format using default country.

    Raises ValueError if the number is invalid.
    """
    try:
        num = phonenumbers.parse(msisdn, default_country)
    except NumberParseException as exc:
        raise ValueError(str(exc)) from exc
    if not phonenumbers.is_valid_number(num):
        raise ValueError("invalid msisdn")
    return phonenumbers.format_number(num, PhoneNumberFormat.E164)


def phone_number_info(phone_number: str) -> PhoneNumberInfo:
    """Describe an E.164 number: region, line type and display format."""
    if not validate_e164(phone_number):
        return PhoneNumberInfo(is_valid=False)
    try:
        num = phonenumbers.parse(phone_number, None)
    except NumberParseException:
        return PhoneNumberInfo(is_valid=False)
    if not phonenumbers.is_valid_number(num):
        return PhoneNumberInfo(is_valid=False)
    return PhoneNumberInfo(
        is_valid=True,
        country=phonenumbers.region_code_for_number(num),
        type=_LINE_TYPES.get(phonenumbers.number_type(num), "unknown"),
        formatted=phonenumbers.format_number(num, PhoneNumberFormat.INTERNATIONAL),
    )


def supports_sms(phone_number: str) -> bool:
    info = phone_number_info(phone_number)
    return info.is_valid and info.type in {"mobile", "voip"}
