"""
Payload cleaning and wire encoding.

clean_payload() prunes unfilled placeholders from a merged body:
- None leaves, empty objects and empty lists are removed
- emergencyContactName survives as "" when unset
- additionalService survives as [] (carriers reject a string there)
- a phone sub-object whose phoneNbr is not a usable number is dropped whole
"""
import json
from typing import Any, Dict
from urllib.parse import urlencode

from app.modules.shipping.normalize import normalize_phone

EMPTY_STRING_FIELDS = frozenset({"emergencyContactName"})
EMPTY_LIST_FIELDS = frozenset({"additionalService"})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _is_empty(value: Any) -> bool:
    return value is None or value == {} or value == []


def _is_phone_object(key: str, value: Any) -> bool:
    return (
        isinstance(value, dict)
        and "phoneNbr" in value
        and (key == "phone" or key.endswith("Phone"))
    )


def clean_payload(value: Any) -> Any:
    if isinstance(value, dict):
        return _clean_object(value)
    if isinstance(value, list):
        cleaned = (clean_payload(item) for item in value)
        return [item for item in cleaned if not _is_empty(item)]
    return value


def _clean_object(data: Dict[str, Any]) -> Dict[str, Any]:
    result = {}
    for key, value in data.items():
        if key in EMPTY_STRING_FIELDS and value is None:
            result[key] = ""
            continue
        if key in EMPTY_LIST_FIELDS and isinstance(value, list):
            result[key] = clean_payload(value)
            continue
        if _is_phone_object(key, value) and not normalize_phone(value.get("phoneNbr")):
            continue
        cleaned = clean_payload(value)
        if _is_empty(cleaned):
            continue
        result[key] = cleaned
    return result


def _form_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value)


def encode_body(body: Dict[str, Any], content_type: str) -> str:
    """Serialize a cleaned body for the endpoint's declared Content-Type."""
    if FORM_CONTENT_TYPE in (content_type or "").lower():
        return urlencode({key: _form_value(value) for key, value in body.items()})
    return json.dumps(body)
