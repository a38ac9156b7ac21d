"""
Carrier-specific request preconditions.

Rules are registered per (carrier, operation) and run on the merged body
before anything is sent. A rule returns the list of missing or invalid
field paths; every problem is reported in one ValidationError.

Rules are not shared between carriers: the "same" operation
has an entirely different shape per carrier.
"""
import logging
from typing import Any, Callable, Dict, List, Tuple

from app.core.exceptions import ErrorMessages, ValidationError
from app.modules.shipping.cleaner import clean_payload
from app.modules.shipping.correlation import get_path
from app.modules.shipping.normalize import normalize_phone

logger = logging.getLogger(__name__)

Rule = Callable[[Dict[str, Any]], List[str]]

_VALIDATION_RULES: Dict[Tuple[str, str], Rule] = {}


def validation_rule(carrier: str, operation: str):
    """
    Decorator to register a validation rule.

    Usage:
        @validation_rule("xpo", "createBillOfLading")
        def validate_xpo_bol(body) -> List[str]:
            ...
    """
    def decorator(func: Rule) -> Rule:
        _VALIDATION_RULES[(carrier.lower(), operation)] = func
        return func
    return decorator


def get_rule(carrier: str, operation: str):
    return _VALIDATION_RULES.get((carrier.lower(), operation))


def run_validation(carrier: str, operation: str, body: Dict[str, Any]) -> None:
    """Raise ValidationError listing every failed field, or return quietly."""
    rule = get_rule(carrier, operation)
    if rule is None:
        return
    missing = rule(body)
    if missing:
        logger.info(f"[CARRIER] {carrier}/{operation}: rejected before dispatch, missing {missing}")
        raise ValidationError(ErrorMessages.MISSING_FIELDS(operation, missing), fields=missing)


# =============================================================================
# Helpers
# =============================================================================

def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def require(body: Any, paths, missing: List[str], prefix: str = "") -> None:
    """Record every dotted path under `body` that is blank."""
    for path in paths:
        if _blank(get_path(body, path)):
            missing.append(f"{prefix}{path}")


def require_positive(body: Any, paths, missing: List[str], prefix: str = "") -> None:
    for path in paths:
        if _number(get_path(body, path)) <= 0:
            missing.append(f"{prefix}{path}")


def require_phone(body: Any, path: str, missing: List[str], prefix: str = "") -> None:
    if not normalize_phone(get_path(body, path)):
        missing.append(f"{prefix}{path}")


def require_items(body: Any, path: str, missing: List[str]) -> List[Dict[str, Any]]:
    """Require a non-empty list of objects at `path`; returns the items."""
    items = get_path(body, path)
    if not isinstance(items, list):
        missing.append(path)
        return []
    items = [item for item in items if isinstance(item, dict) and clean_payload(item)]
    if not items:
        missing.append(path)
    return items
