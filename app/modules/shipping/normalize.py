"""
Field normalization applied to caller payloads before merging.

Phone numbers become NNN-NNNNNNN (or "" when unusable) and a fixed set of
free-text fields are trimmed.
"""
import re
from typing import Any

PHONE_KEYS = frozenset({"phoneNbr", "phone"})

TRIMMED_KEYS = frozenset({
    "companyName",
    "emailAddr",
    "email",
    "addressLine1",
    "addressLine2",
    "address1",
    "address2",
    "name",
    "fullName",
    "shipperName",
    "cityName",
    "city",
    "desc",
    "description",
    "remarks",
})

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(value: Any) -> str:
    """
    >>> normalize_phone("+1 (626) 715-0682")
    '626-7150682'
    >>> normalize_phone("abc")
    ''
    """
    if value is None:
        return ""
    text = str(value).strip()
    if text.startswith("+1"):
        text = text[2:]
    digits = _NON_DIGITS.sub("", text)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        return ""
    return f"{digits[:3]}-{digits[3:]}"


def normalize_payload(value: Any) -> Any:
    """Return a normalized copy of a caller payload."""
    if isinstance(value, dict):
        result = {}
        for key, child in value.items():
            if key in PHONE_KEYS and isinstance(child, str):
                result[key] = normalize_phone(child)
            elif key in TRIMMED_KEYS and isinstance(child, str):
                result[key] = child.strip()
            else:
                result[key] = normalize_payload(child)
        return result
    if isinstance(value, list):
        return [normalize_payload(item) for item in value]
    return value
