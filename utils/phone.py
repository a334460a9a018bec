import re

import phonenumbers
from phonenumbers import NumberParseException

# Symbols people type around numbers; anything else is rejected outright
_SEPARATORS = re.compile(r"[\s+\-().]")
_DIGITS_ONLY = re.compile(r"[0-9]+")

# Arabic-Indic and Extended Arabic-Indic (Persian) digits
_EASTERN_DIGITS = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)


def normalize_phone(raw, strict=False):
    """
    Canonicalize a user-typed WhatsApp number.

    Returns international digits with country code and no leading "+"
    (e.g. "96890000000"), or None when the input is not a number we can
    route to. `strict=True` additionally requires the number to match a
    known number range, not just a possible length for its country.
    """
    if not raw:
        return None

    digits = _SEPARATORS.sub("", raw.strip().translate(_EASTERN_DIGITS))

    if digits.startswith("00"):
        digits = digits[2:]

    if not _DIGITS_ONLY.fullmatch(digits):
        return None

    try:
        parsed = phonenumbers.parse("+" + digits, None)
    except NumberParseException:
        return None

    if phonenumbers.region_code_for_country_code(parsed.country_code) == "ZZ":
        return None

    if not phonenumbers.is_possible_number(parsed):
        return None

    if strict and not phonenumbers.is_valid_number(parsed):
        return None

    return phonenumbers.format_number(
        parsed, phonenumbers.PhoneNumberFormat.E164
    ).lstrip("+")


def mask_phone(wa_id):
    if not wa_id or len(wa_id) < 7:
        return "*****"
    return wa_id[:5] + "*****" + wa_id[-2:]
