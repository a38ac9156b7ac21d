"""
Carrier error message extraction.

Carriers answer failures in several shapes. Each extractor below looks for
one shape and returns a message or None; ERROR_EXTRACTORS is tried in order
and the first message wins. A new carrier shape is one more function in the
list.
"""
import json
import logging
from typing import Any, Callable, List, Optional

from app.core.exceptions import ErrorMessages

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 500

Extractor = Callable[[Any, str], Optional[str]]

_MESSAGE_KEYS = ("message", "errorMessage", "detail", "description", "msg")


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _message_of(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return _text(item)
    if not isinstance(item, dict):
        return None
    for key in _MESSAGE_KEYS:
        message = _text(item.get(key))
        if message:
            location = _text(item.get("location")) or _text(item.get("field"))
            return f"{location}: {message}" if location else message
    return None


def _join(items: Any) -> Optional[str]:
    if not isinstance(items, list):
        return None
    messages = [m for m in (_message_of(item) for item in items) if m]
    return "; ".join(messages) or None


def from_more_info(payload: Any, text: str) -> Optional[str]:
    """{"error": {"moreInfo": [{"message": ..., "location": ...}]}}"""
    if not isinstance(payload, dict) or not isinstance(payload.get("error"), dict):
        return None
    return _join(payload["error"].get("moreInfo"))


def from_validation_errors(payload: Any, text: str) -> Optional[str]:
    """{"validationErrors": [{"field": ..., "message": ...}]}"""
    if not isinstance(payload, dict):
        return None
    return _join(payload.get("validationErrors"))


def from_errors(payload: Any, text: str) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    return _join(payload.get("errors"))


def from_scalar_fields(payload: Any, text: str) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    fault = payload.get("fault")
    candidates = [
        payload.get("message"),
        error.get("message") if isinstance(error, dict) else None,
        error,
        payload.get("errorMessage"),
        payload.get("detail"),
        fault.get("faultstring") if isinstance(fault, dict) else None,
    ]
    for candidate in candidates:
        message = _text(candidate)
        if message:
            return message
    return None


def from_raw_body(payload: Any, text: str) -> Optional[str]:
    if payload is None:
        return _text(text)
    if payload in ({}, []):
        return None
    return json.dumps(payload)


ERROR_EXTRACTORS: List[Extractor] = [
    from_more_info,
    from_validation_errors,
    from_errors,
    from_scalar_fields,
    from_raw_body,
]


def extract_error_message(
    status: int,
    body_text: Optional[str],
    max_length: int = DEFAULT_MAX_LENGTH,
    extractors: Optional[List[Extractor]] = None,
) -> str:
    """
    Reduce a carrier error body to one message, never raising.

    Falls back to "API error <status>" when nothing usable is found.
    """
    text = body_text or ""
    try:
        payload = json.loads(text) if text.strip() else None
    except ValueError:
        payload = None

    message = None
    for extractor in extractors or ERROR_EXTRACTORS:
        try:
            message = extractor(payload, text)
        except (TypeError, AttributeError, ValueError) as e:
            logger.debug(f"[CARRIER] error extractor {extractor.__name__} failed: {e}")
            message = None
        if message:
            break

    if not message:
        return ErrorMessages.API_ERROR(status)
    if len(message) > max_length:
        return message[:max_length]
    return message
